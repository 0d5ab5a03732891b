"""Metadata update requests and the external writer process lifecycle."""

import asyncio
import contextlib
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Set, Tuple

from .. import config
from ..exceptions import (
    ExternalProcessFailure,
    ExternalProcessLaunchError,
    InProgressError,
    InvalidDateSpecError,
)
from ..models import DateSource, DateSpec, Failed, PhotoRecord, Succeeded, UpdateOutcome, UpdateRequest
from ..reconcile.dates import captured_date, filename_datetime

SuccessCallback = Callable[[Path], Awaitable[None]]


def normalize_date_spec(date_spec: DateSpec, record: Optional[PhotoRecord] = None,
                        path: Optional[Path] = None) -> str:
    """
    Turns a date specification into the literal 'YYYY-MM-DD HH:MM:SS' the writer takes.

    Literal strings are validated and re-emitted zero-padded; symbolic
    sources are resolved against `record` (the filename source also works
    from `path` alone).
    """
    if isinstance(date_spec, datetime):
        return date_spec.strftime(config.LITERAL_DATETIME_FORMAT)

    if isinstance(date_spec, str) and not isinstance(date_spec, DateSource):
        try:
            date_spec = DateSource(date_spec.strip().lower())
        except ValueError:
            try:
                parsed = datetime.strptime(date_spec, config.LITERAL_DATETIME_FORMAT)
            except ValueError:
                raise InvalidDateSpecError(
                    f"Invalid datetime '{date_spec}'. Expected YYYY-MM-DD HH:MM:SS "
                    f"or one of: {', '.join(s.value for s in DateSource)}"
                ) from None
            # strptime accepts unpadded fields; the writer gets the zero-padded form
            return parsed.strftime(config.LITERAL_DATETIME_FORMAT)

    if not isinstance(date_spec, DateSource):
        raise InvalidDateSpecError(f"Unsupported date specification: {date_spec!r}")

    dt = _resolve_source(date_spec, record, path)
    return dt.strftime(config.LITERAL_DATETIME_FORMAT)


def _resolve_source(source: DateSource, record: Optional[PhotoRecord], path: Optional[Path]) -> datetime:
    if source is DateSource.FILENAME:
        name = record.name if record is not None else (path.name if path is not None else "")
        dt = filename_datetime(name)
        if dt is None:
            raise InvalidDateSpecError(f"Filename does not start with YYYYMM: {name}")
        return dt

    if record is None:
        raise InvalidDateSpecError(f"Date source '{source.value}' needs a catalog record")

    if source is DateSource.MODIFIED:
        return record.modified_at
    if source is DateSource.CREATED:
        return record.created_at

    dt = captured_date(record.embedded_metadata)
    if dt is None:
        raise InvalidDateSpecError(f"No captured date in metadata of {record.name}")
    return dt


async def run_writer(argv: Iterable[str], timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """Run the writer and return (returncode, stdout, stderr).

    Launch problems raise ExternalProcessLaunchError; a timeout kills the
    process and raises ExternalProcessFailure.
    """
    cmd = list(argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalProcessLaunchError(f"Failed to launch metadata writer '{cmd[0]}': {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise ExternalProcessFailure(f"Metadata writer timed out after {timeout}s") from None
    except OSError as e:
        raise ExternalProcessFailure(f"Lost contact with metadata writer: {e}") from e

    return (
        proc.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


class UpdateOrchestrator:
    """
    Dispatches date updates to the external metadata writer.

    At most one request per path is in flight; a duplicate raises
    InProgressError instead of queueing. Each request ends in exactly one
    Succeeded or Failed outcome, and `on_success` (typically a catalog
    re-scan) is awaited only after a successful process has exited.
    """

    def __init__(self,
                 command: Optional[Iterable[str]] = None,
                 on_success: Optional[SuccessCallback] = None,
                 timeout: Optional[float] = None):
        self.command = list(command) if command is not None else list(config.WRITER_COMMAND)
        self.on_success = on_success
        self.timeout = timeout
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def is_in_flight(self, path) -> bool:
        with self._lock:
            return self._key(path) in self._in_flight

    async def submit(self, request: UpdateRequest, record: Optional[PhotoRecord] = None,
                     timeout: Optional[float] = None) -> UpdateOutcome:
        return await self.request_update(request.target_path, request.date_spec, record, timeout)

    async def request_update(self,
                             path,
                             date_spec: DateSpec,
                             record: Optional[PhotoRecord] = None,
                             timeout: Optional[float] = None,
                             refresh: bool = True) -> UpdateOutcome:
        """
        Runs one update. With `refresh=False` the on_success signal is skipped
        for this call only (batch callers re-scan once themselves).
        """
        path = Path(path)
        date_str = normalize_date_spec(date_spec, record, path)

        key = self._key(path)
        self._acquire(key)
        try:
            outcome = await self._dispatch(path, date_str, timeout if timeout is not None else self.timeout)
        finally:
            self._release(key)

        if isinstance(outcome, Succeeded) and refresh and self.on_success is not None:
            await self.on_success(path)
        return outcome

    async def _dispatch(self, path: Path, date_str: str, timeout: Optional[float]) -> UpdateOutcome:
        logging.info(f"Updating EXIF date of {path} to {date_str}")
        try:
            rc, out, err = await run_writer([*self.command, str(path), date_str], timeout=timeout)
        except (ExternalProcessLaunchError, ExternalProcessFailure) as e:
            logging.error(f"Update failed for {path}: {e}")
            return Failed(e)

        if rc != 0:
            # Surfaced as written, minus the trailing line break
            message = err.rstrip("\r\n")
            if not message.strip():
                message = f"Metadata writer exited with status {rc}"
            logging.error(f"Update failed for {path}: {message}")
            return Failed(ExternalProcessFailure(message, returncode=rc))

        logging.info(f"Update succeeded for {path}")
        return Succeeded(out.rstrip("\r\n"))

    def _acquire(self, key: str):
        with self._lock:
            if key in self._in_flight:
                raise InProgressError(key)
            self._in_flight.add(key)

    def _release(self, key: str):
        with self._lock:
            self._in_flight.discard(key)

    @staticmethod
    def _key(path) -> str:
        return str(Path(path).absolute())
