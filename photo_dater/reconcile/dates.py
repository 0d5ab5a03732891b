"""
Date reconciliation between filename, embedded EXIF and filesystem dates.

Everything here is pure: no I/O, no logging, and malformed input yields None
instead of raising.
"""
import re
from datetime import datetime
from typing import Any, Mapping, Optional

from .. import config
from ..models import DateMismatchAssessment, PhotoRecord

_EXIF_DATE_PREFIX = re.compile(r'^\d{4}:\d{2}:\d{2}')


def filename_year_month(name: str) -> Optional[str]:
    """
    Returns the leading YYYYMM token of a filename, e.g. '202401_beach.jpg' -> '202401'.
    None if the name doesn't start with six digits or they aren't a valid year/month.
    """
    m = config.FILENAME_DATE_RE.match(name)
    if not m:
        return None

    yyyymm = m.group(1)
    year = int(yyyymm[:4])
    month = int(yyyymm[4:6])

    if config.MIN_FILENAME_YEAR <= year <= config.MAX_FILENAME_YEAR and 1 <= month <= 12:
        return yyyymm
    return None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Handles the date shapes found in EXIF and on the command line.
    Returns a naive datetime (zone info is dropped, local wall time is kept).
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, bytes):
        value = value.decode('ascii', errors='ignore')
    if not isinstance(value, str):
        return None

    clean = value.strip().strip('\x00').strip()
    if not clean:
        return None

    # 1. Standard EXIF style "YYYY:MM:DD HH:MM:SS" (cameras sometimes add subseconds)
    if _EXIF_DATE_PREFIX.match(clean):
        clean = clean.replace(":", "-", 2)
    plain = clean.split(".")[0]
    for fmt in (config.LITERAL_DATETIME_FORMAT, "%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(plain, fmt)
        except ValueError:
            pass

    # 2. ISO format (e.g. 2020-01-01T12:00:00+02:00)
    try:
        return datetime.fromisoformat(clean.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def year_month(value: Any) -> Optional[str]:
    dt = parse_date(value)
    if dt is None:
        return None
    return f"{dt.year:04d}{dt.month:02d}"


def captured_date(metadata: Mapping[str, Any]) -> Optional[datetime]:
    """DateTimeOriginal first, then DateTime. Unparseable values count as absent."""
    for field_name in config.CAPTURE_DATE_FIELDS:
        dt = parse_date(metadata.get(field_name))
        if dt is not None:
            return dt
    return None


def filename_datetime(name: str) -> Optional[datetime]:
    """First instant of the filename's year-month, used when the filename is the date source."""
    yyyymm = filename_year_month(name)
    if yyyymm is None:
        return None
    return datetime(int(yyyymm[:4]), int(yyyymm[4:6]), 1)


def assess(record: PhotoRecord) -> DateMismatchAssessment:
    filename_date = filename_year_month(record.name)
    captured = captured_date(record.embedded_metadata)

    # A filename without a YYYYMM prefix is always flagged.
    if filename_date is None:
        mismatch = True
    elif captured is None:
        mismatch = True
    else:
        mismatch = filename_date != year_month(captured)

    return DateMismatchAssessment(
        filename_date=filename_date,
        captured_date=captured,
        mismatch=mismatch,
        missing_captured_date=captured is None,
    )
