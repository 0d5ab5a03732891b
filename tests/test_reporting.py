import csv
from datetime import datetime
from pathlib import Path

import pytest

from photo_dater.models import Catalog, PhotoRecord
from photo_dater.reporting import describe, format_date, format_file_size, write_catalog_report


def _record(name, size=2048, **meta):
    ts = datetime(2024, 5, 1, 12, 0, 0)
    return PhotoRecord(
        name=name, path=Path("/photos") / name,
        created_at=ts, modified_at=ts, size_bytes=size,
        embedded_metadata=meta,
    )


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5 MB"),
        (3 * 1024 ** 3 + 1024 ** 3 // 4, "3.25 GB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_date():
    assert format_date(None) == "Not available"
    assert format_date("garbage") == "Invalid date"
    assert format_date("2024:03:15 14:05:09") == "Mar 15, 2024, 02:05:09 PM"


def test_describe_prefers_description_and_joins_camera():
    rec = _record(
        "202403_a.jpg",
        DateTimeOriginal="2024:03:15 14:05:09",
        ImageDescription="Beach",
        XPTitle="Ignored",
        Make="Canon",
        Model="EOS R5",
        ImageWidth=8192,
        ImageHeight=5464,
    )
    d = describe(rec)

    assert d["Title"] == "Beach"
    assert d["Camera"] == "Canon EOS R5"
    assert d["Dimensions"] == "8192 x 5464"
    assert d["Size"] == "2 KB"
    assert d["Filename Date"] == "202403"
    assert d["Mismatch"] == "no"


def test_describe_without_metadata():
    d = describe(_record("beach.jpg"))

    assert d["Title"] == "Not available"
    assert d["Camera"] == "Not available"
    assert d["Dimensions"] == "Not available"
    assert d["Date Taken"] == "Not available"
    assert d["Filename Date"] == "Not available"
    assert d["Mismatch"] == "yes"
    assert d["Missing Date"] == "yes"


def test_write_catalog_report(tmp_path):
    catalog = Catalog(
        directory_path=Path("/photos"),
        records=(
            _record("202403_ok.jpg", DateTimeOriginal="2024:03:01 10:00:00"),
            _record("202403_bad.jpg", DateTimeOriginal="2024:04:01 10:00:00"),
            _record("beach.jpg"),
        ),
    )
    out = tmp_path / "report.csv"

    assert write_catalog_report(catalog, out) == 3
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert [r["Name"] for r in rows] == ["202403_ok.jpg", "202403_bad.jpg", "beach.jpg"]
    assert [r["Mismatch"] for r in rows] == ["0", "1", "1"]
    assert rows[1]["Reason"] == "month-differs"
    assert rows[2]["Reason"] == "no-filename-date"
    assert rows[0]["Date Taken"] == "2024-03-01 10:00:00"


def test_write_catalog_report_mismatches_only(tmp_path):
    catalog = Catalog(
        directory_path=Path("/photos"),
        records=(
            _record("202403_ok.jpg", DateTimeOriginal="2024:03:01 10:00:00"),
            _record("beach.jpg"),
        ),
    )
    out = tmp_path / "report.csv"

    assert write_catalog_report(catalog, out, mismatches_only=True) == 1
    assert "beach.jpg" in out.read_text(encoding="utf-8")
    assert "202403_ok.jpg" not in out.read_text(encoding="utf-8")
