import csv
import logging

import pytest

from photo_dater import main as cli


@pytest.fixture(autouse=True)
def restore_logging():
    # main() reconfigures the root logger
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _run(argv):
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    return exc.value.code


@pytest.fixture
def album(make_image, tmp_path):
    d = tmp_path / "album"
    d.mkdir()
    make_image(d / "202403_wrong.jpg", date_original="2024:04:02 09:00:00", make="Canon")
    make_image(d / "202405_fine.jpg", date_original="2024:05:20 12:00:00")
    return d


def test_scan_lists_flags_and_writes_report(album, tmp_path, capsys):
    report = tmp_path / "report.csv"

    assert _run(["scan", str(album), "--report", str(report)]) == 0

    out = capsys.readouterr().out
    assert "MISMATCH  202403  2024-04-02 09:00:00  202403_wrong.jpg" in out
    assert "202405_fine.jpg" in out
    with open(report, newline="", encoding="utf-8") as f:
        assert len(list(csv.DictReader(f))) == 2


def test_scan_mismatches_only(album, capsys):
    assert _run(["scan", str(album), "--mismatches-only"]) == 0
    out = capsys.readouterr().out
    assert "202403_wrong.jpg" in out
    assert "202405_fine.jpg" not in out


def test_scan_missing_directory_fails(tmp_path):
    assert _run(["scan", str(tmp_path / "missing")]) == 1


def test_show(album, capsys):
    assert _run(["show", str(album / "202403_wrong.jpg")]) == 0
    out = capsys.readouterr().out
    assert "Camera:" in out and "Canon" in out
    assert "Mismatch:" in out


def test_set_date_with_custom_writer(album, writer_script, capsys):
    command = writer_script("print('written', sys.argv[2])\n")
    writer = " ".join(command)

    assert _run(["--writer", writer, "set-date", str(album / "202403_wrong.jpg"), "2024-03-09 10:00:00"]) == 0
    assert "written 2024-03-09 10:00:00" in capsys.readouterr().out


def test_set_date_failure_exit_code(album, writer_script, capsys):
    command = writer_script("sys.stderr.write('nope')\nsys.exit(1)\n")

    assert _run(["--writer", " ".join(command), "set-date", str(album / "202403_wrong.jpg"), "filename"]) == 1
    assert "Error: nope" in capsys.readouterr().err


def test_set_date_rejects_bad_literal(album):
    assert _run(["set-date", str(album / "202403_wrong.jpg"), "tomorrow"]) == 1
