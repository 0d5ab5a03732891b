import csv
import logging
from pathlib import Path
from typing import Any, Dict

from . import config
from .models import Catalog, PhotoRecord
from .reconcile.dates import assess, parse_date

NOT_AVAILABLE = "Not available"


def format_file_size(size_bytes: int) -> str:
    """1536 -> '1.5 KB'. Base 1024, at most two decimals."""
    if size_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def format_date(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    dt = parse_date(value)
    if dt is None:
        return "Invalid date"
    return dt.strftime("%b %d, %Y, %I:%M:%S %p")


def describe(record: PhotoRecord) -> Dict[str, str]:
    """Human-readable detail fields for one photo."""
    meta = record.embedded_metadata
    a = assess(record)

    camera = " ".join(str(meta[k]) for k in ("Make", "Model") if meta.get(k))
    width, height = meta.get("ImageWidth"), meta.get("ImageHeight")

    return {
        "Filename": record.name,
        "Filename Date": a.filename_date or NOT_AVAILABLE,
        "Date Taken": format_date(a.captured_date),
        "Date Created": format_date(record.created_at),
        "Date Modified": format_date(record.modified_at),
        "Title": meta.get("ImageDescription") or meta.get("XPTitle") or NOT_AVAILABLE,
        "Camera": camera or NOT_AVAILABLE,
        "Dimensions": f"{width} x {height}" if width and height else NOT_AVAILABLE,
        "Size": format_file_size(record.size_bytes),
        "Mismatch": "yes" if a.mismatch else "no",
        "Missing Date": "yes" if a.missing_captured_date else "no",
    }


def write_catalog_report(catalog: Catalog, output_csv: Path, mismatches_only: bool = False) -> int:
    """
    Writes one CSV row per record of `catalog`. Returns the number of rows.
    """
    logging.info(f"Writing date report for {catalog.directory_path} -> {output_csv}")
    rows = 0

    with open(output_csv, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(config.REPORT_HEADERS)

        for record in catalog.records:
            a = assess(record)
            if mismatches_only and not a.mismatch:
                continue
            writer.writerow([
                record.name,
                str(record.path),
                a.filename_date or "",
                a.captured_date.strftime(config.LITERAL_DATETIME_FORMAT) if a.captured_date else "",
                record.created_at.strftime(config.LITERAL_DATETIME_FORMAT),
                record.modified_at.strftime(config.LITERAL_DATETIME_FORMAT),
                record.size_bytes,
                int(a.mismatch),
                int(a.missing_captured_date),
                a.reason or "",
            ])
            rows += 1

    logging.info(f"Report complete. {rows} rows written.")
    return rows
