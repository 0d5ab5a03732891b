import argparse
import asyncio
import logging
import shlex
import sys
from pathlib import Path
from typing import Optional

from .core import PhotoDaterApp
from .exceptions import PhotoDaterError
from .models import DateSource, Failed
from .reporting import describe, write_catalog_report


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Dater: compare filename dates with EXIF capture dates and fix them")

    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("--writer", type=str, default=None,
                   help="Metadata writer command (default: bundled photo_dater.update.writer)")
    p.add_argument("--workers", type=int, default=1, help="Parallel workers for metadata extraction")

    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="List photos in a directory with their date flags")
    scan.add_argument("directory", type=Path)
    scan.add_argument("--mismatches-only", action="store_true", help="Only list flagged photos")
    scan.add_argument("--report", type=Path, default=None, help="Write a CSV report to this path")

    show = sub.add_parser("show", help="Show the details of one photo")
    show.add_argument("path", type=Path)

    sources = [s.value for s in DateSource]
    set_date = sub.add_parser("set-date", help="Write a capture date into one photo")
    set_date.add_argument("path", type=Path)
    set_date.add_argument("date", help=f"'YYYY-MM-DD HH:MM:SS' or one of: {', '.join(sources)}")
    set_date.add_argument("--timeout", type=float, default=None, help="Seconds before the writer is killed")

    fix = sub.add_parser("fix", help="Write capture dates into every flagged photo of a directory")
    fix.add_argument("directory", type=Path)
    fix.add_argument("--source", choices=[DateSource.FILENAME.value, DateSource.MODIFIED.value, DateSource.CREATED.value],
                     default=DateSource.FILENAME.value)
    fix.add_argument("--timeout", type=float, default=None, help="Seconds before each writer run is killed")

    return p.parse_args(argv)


def _print_row(record, assessment):
    flag = "MISMATCH" if assessment.mismatch else "ok"
    taken = assessment.captured_date.strftime("%Y-%m-%d %H:%M:%S") if assessment.captured_date else "-"
    print(f"{flag:8}  {assessment.filename_date or '-':6}  {taken:19}  {record.name}")


def cmd_scan(app: PhotoDaterApp, args) -> int:
    catalog = app.open_directory(args.directory.resolve())
    for record, assessment in app.assessments(mismatches_only=args.mismatches_only):
        _print_row(record, assessment)

    if args.report:
        write_catalog_report(catalog, args.report, mismatches_only=args.mismatches_only)
    return 0


def cmd_show(app: PhotoDaterApp, args) -> int:
    path = args.path.resolve()
    catalog = app.open_directory(path.parent)
    record = catalog.find(path)
    if record is None:
        logging.error(f"{path} is not a supported photo in {path.parent}")
        return 1

    for label, value in describe(record).items():
        print(f"{label + ':':15} {value}")
    return 0


def cmd_set_date(app: PhotoDaterApp, args) -> int:
    path = args.path.resolve()
    outcome, assessment = asyncio.run(app.update_date(path, args.date, timeout=args.timeout))

    if isinstance(outcome, Failed):
        print(f"Error: {outcome.reason}", file=sys.stderr)
        return 1

    if outcome.message:
        print(outcome.message)
    if assessment is not None:
        record = app.catalog.find(path)
        _print_row(record, assessment)
    return 0


def cmd_fix(app: PhotoDaterApp, args) -> int:
    app.open_directory(args.directory.resolve())
    results = asyncio.run(app.fix_mismatches(DateSource(args.source), timeout=args.timeout))

    failed = [(rec, outcome) for rec, outcome in results if isinstance(outcome, Failed)]
    for rec, outcome in failed:
        print(f"Error: {rec.name}: {outcome.reason}", file=sys.stderr)

    logging.info(f"Updated {len(results) - len(failed)} of {len(results)} photos.")
    return 1 if failed else 0


COMMANDS = {
    "scan": cmd_scan,
    "show": cmd_show,
    "set-date": cmd_set_date,
    "fix": cmd_fix,
}


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    app = PhotoDaterApp(
        writer_command=shlex.split(args.writer) if args.writer else None,
        max_workers=args.workers,
    )

    try:
        code = COMMANDS[args.command](app, args)
    except PhotoDaterError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
