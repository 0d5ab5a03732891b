import logging
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image

from .. import config
from ..exceptions import MetadataParseFailure


class MetadataExtractor:
    """
    Reads embedded EXIF fields from image files using Pillow.

    Missing metadata is a normal outcome: any parse failure yields an empty
    mapping and is only logged at debug level.
    """

    def extract(self, path: Path) -> Dict[str, Any]:
        """
        Returns the recognised EXIF fields of `path` keyed by their EXIF names
        (DateTimeOriginal, DateTime, ImageDescription, XPTitle, Make, Model,
        ImageWidth, ImageHeight).
        """
        try:
            return self._parse(path)
        except MetadataParseFailure as e:
            logging.debug(f"No EXIF metadata for {path}: {e}")
            return {}

    def _parse(self, path: Path) -> Dict[str, Any]:
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                size = img.size
                if not exif:
                    raise MetadataParseFailure("no EXIF block")
                exif_ifd = exif.get_ifd(config.EXIF_IFD_POINTER)
                return self._collect(exif, exif_ifd, size)
        except MetadataParseFailure:
            raise
        except Exception as e:
            # Pillow surfaces corrupt headers as OSError, SyntaxError, struct.error, ...
            raise MetadataParseFailure(str(e)) from e

    def _collect(self, exif, exif_ifd, size) -> Dict[str, Any]:
        data: Dict[str, Any] = {}

        for name, tag in config.IFD0_TEXT_TAGS.items():
            val = self._text(exif.get(tag))
            if val:
                data[name] = val

        for name, tag in config.EXIF_TEXT_TAGS.items():
            val = self._text(exif_ifd.get(tag))
            if val:
                data[name] = val

        title = self._xp_text(exif.get(config.XP_TITLE_TAG))
        if title:
            data['XPTitle'] = title

        # Dimensions: IFD0 -> Exif sub-IFD -> decoded image size
        for index, (name, (ifd0_tag, exif_tag)) in enumerate(config.DIMENSION_TAGS.items()):
            val = self._int(exif.get(ifd0_tag))
            if val is None:
                val = self._int(exif_ifd.get(exif_tag))
            if val is None:
                val = size[index]
            data[name] = val

        return data

    # --- Value Helpers ---

    def _text(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode('utf-8', errors='replace')
        text = str(value).strip('\x00').strip()
        return text or None

    def _xp_text(self, value: Any) -> Optional[str]:
        """XP* tags are UTF-16LE byte strings (Windows Explorer)."""
        if value is None:
            return None
        if isinstance(value, (tuple, list)):
            value = bytes(value)
        if isinstance(value, bytes):
            value = value.decode('utf-16-le', errors='ignore')
        return self._text(value)

    def _int(self, value: Any) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None
