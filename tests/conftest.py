import sys
import textwrap
from pathlib import Path

import piexif
import pytest
from PIL import Image


def _exif_bytes(date_original=None, date_time=None, make=None, model=None,
                description=None, xp_title=None, width=None, height=None):
    zeroth = {}
    exif = {}
    if date_time:
        zeroth[piexif.ImageIFD.DateTime] = date_time
    if make:
        zeroth[piexif.ImageIFD.Make] = make
    if model:
        zeroth[piexif.ImageIFD.Model] = model
    if description:
        zeroth[piexif.ImageIFD.ImageDescription] = description
    if xp_title:
        zeroth[piexif.ImageIFD.XPTitle] = tuple((xp_title + "\x00").encode("utf-16-le"))
    if width:
        zeroth[piexif.ImageIFD.ImageWidth] = width
    if height:
        zeroth[piexif.ImageIFD.ImageLength] = height
    if date_original:
        exif[piexif.ExifIFD.DateTimeOriginal] = date_original
    return piexif.dump({"0th": zeroth, "Exif": exif, "GPS": {}, "1st": {}, "thumbnail": None})


@pytest.fixture
def make_image():
    """Factory writing a small image, optionally with EXIF fields."""
    def _make(path: Path, fmt: str = "JPEG", size=(8, 6), **exif_fields) -> Path:
        img = Image.new("RGB", size, "white")
        if exif_fields:
            img.save(path, fmt, exif=_exif_bytes(**exif_fields))
        else:
            img.save(path, fmt)
        return path
    return _make


@pytest.fixture
def writer_script(tmp_path):
    """Factory for stand-in metadata writers; returns the command list."""
    def _make(body: str, name: str = "fake_writer.py"):
        script = tmp_path / name
        script.write_text("import sys, time\n" + textwrap.dedent(body))
        return [sys.executable, str(script)]
    return _make
