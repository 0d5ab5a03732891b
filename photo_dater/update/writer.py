"""
Bundled metadata writer: stores a capture date in a photo's EXIF block.

Usage:
    python -m photo_dater.update.writer <image_path> <date_source>

date_source is either "YYYY-MM-DD HH:MM:SS" or one of
  filename  - YYYYMM prefix of the filename (first day of that month)
  modified  - file modification time
  created   - file creation time

Exit status 0 with a confirmation on stdout, 1 with "Error: ..." on stderr.
"""
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import piexif
from PIL import Image

from .. import config
from ..reconcile.dates import filename_datetime

USAGE = f"""Usage: {Path(sys.argv[0]).name} <image_path> <date_source>
Date source can be:
  - A datetime string: "2024-01-15 14:30:00"
  - 'filename' to extract from filename (yyyymm format)
  - 'modified' to use file modified date
  - 'created' to use file created date"""


class WriteError(Exception):
    pass


def resolve_date(path: Path, date_source: str) -> datetime:
    if date_source == "filename":
        dt = filename_datetime(path.name)
        if dt is None:
            raise WriteError("Filename does not start with a valid YYYYMM date "
                             f"(year must be {config.MIN_FILENAME_YEAR}-{config.MAX_FILENAME_YEAR}, month 1-12)")
        return dt
    if date_source == "modified":
        return datetime.fromtimestamp(path.stat().st_mtime)
    if date_source == "created":
        st = path.stat()
        return datetime.fromtimestamp(getattr(st, 'st_birthtime', st.st_ctime))

    try:
        return datetime.strptime(date_source, config.LITERAL_DATETIME_FORMAT)
    except ValueError:
        raise WriteError("Invalid datetime format. Expected format: YYYY-MM-DD HH:MM:SS "
                         "or 'filename'/'modified'/'created'") from None


def write_capture_date(path: Path, dt: datetime):
    """Sets DateTimeOriginal and DateTimeDigitized, replacing the file atomically."""
    if not path.exists():
        raise WriteError(f"File not found: {path}")

    stamp = dt.strftime(config.EXIF_DATETIME_FORMAT).encode('ascii')

    with Image.open(path) as img:
        fmt = img.format
        exif_dict = _load_exif(img.info.get('exif'))

    exif_dict['Exif'][piexif.ExifIFD.DateTimeOriginal] = stamp
    exif_dict['Exif'][piexif.ExifIFD.DateTimeDigitized] = stamp
    # Thumbnails from other tools often fail to round-trip through piexif.dump
    exif_dict.pop('thumbnail', None)
    exif_dict['1st'] = {}
    exif_bytes = piexif.dump(exif_dict)

    if fmt not in config.PIEXIF_INSERT_FORMATS | config.PILLOW_RESAVE_FORMATS:
        raise WriteError(f"Writing EXIF is not supported for {fmt or 'unknown'} images")

    fd, tmp_name = tempfile.mkstemp(prefix='.', suffix=path.suffix, dir=path.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        if fmt in config.PIEXIF_INSERT_FORMATS:
            # Splices the EXIF segment without re-encoding pixels
            tmp.write_bytes(path.read_bytes())
            piexif.insert(exif_bytes, str(tmp))
        else:
            with Image.open(path) as img:
                img.save(tmp, format=fmt, exif=exif_bytes)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def _load_exif(raw) -> dict:
    empty = {'0th': {}, 'Exif': {}, 'GPS': {}, 'Interop': {}, '1st': {}, 'thumbnail': None}
    if not raw:
        return empty
    if raw.startswith(b'Exif\x00\x00'):
        raw = raw[6:]
    try:
        loaded = piexif.load(raw)
    except Exception:
        # Unreadable existing block: start over rather than refuse to write
        return empty
    for key, value in empty.items():
        loaded.setdefault(key, value)
    return loaded


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 2:
        print(USAGE, file=sys.stderr)
        return 1

    path = Path(args[0])
    try:
        dt = resolve_date(path, args[1])
        write_capture_date(path, dt)
    except Exception as e:
        # Exit contract: every failure is "Error: ..." on stderr with status 1
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Successfully updated EXIF date for: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
