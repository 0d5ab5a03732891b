"""
Configuration constants for photo-dater.
"""
import re
import sys

# --- File Type Definitions ---
SUPPORTED_EXTS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.tiff', '.webp'}

# Formats the bundled writer can store EXIF in.
# piexif edits JPEG/WebP in place; PNG/TIFF are re-encoded through Pillow.
PIEXIF_INSERT_FORMATS = {'JPEG', 'WEBP'}
PILLOW_RESAVE_FORMATS = {'PNG', 'TIFF'}

# --- Metadata Parsing ---
# Pillow tag ids, keyed by the field names exposed in PhotoRecord.embedded_metadata
EXIF_IFD_POINTER = 0x8769

IFD0_TEXT_TAGS = {
    'DateTime': 306,
    'ImageDescription': 270,
    'Make': 271,
    'Model': 272,
}
EXIF_TEXT_TAGS = {
    'DateTimeOriginal': 36867,
}
XP_TITLE_TAG = 0x9C9B

# (IFD0 tag, Exif sub-IFD tag) per dimension; first hit wins
DIMENSION_TAGS = {
    'ImageWidth': (256, 40962),
    'ImageHeight': (257, 40963),
}

# Preference order for the "captured date" of a photo
CAPTURE_DATE_FIELDS = ['DateTimeOriginal', 'DateTime']

# --- Dates ---
LITERAL_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

FILENAME_DATE_RE = re.compile(r'^(\d{6})')
MIN_FILENAME_YEAR = 1900
MAX_FILENAME_YEAR = 2100

# --- External Writer ---
# Invoked as: WRITER_COMMAND + [path, date]
WRITER_COMMAND = [sys.executable, "-m", "photo_dater.update.writer"]

# --- Reporting ---
REPORT_HEADERS = [
    "Name",
    "Path",
    "Filename Date",
    "Date Taken",
    "Created",
    "Modified",
    "Size",
    "Mismatch",
    "Missing Date",
    "Reason",
]
