from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .exceptions import UpdateError


@dataclass
class PhotoRecord:
    """
    Represents one supported image found during a directory scan.
    """
    name: str
    path: Path              # absolute; unique within a catalog snapshot
    created_at: datetime
    modified_at: datetime
    size_bytes: int

    # Field name -> value. A missing field means "unknown".
    embedded_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Catalog:
    """
    Point-in-time snapshot of one directory. Never mutated after construction;
    a re-scan produces a new Catalog.
    """
    directory_path: Path
    records: Tuple[PhotoRecord, ...] = ()
    version: int = 0
    scanned_at: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def find(self, path) -> Optional[PhotoRecord]:
        target = Path(path)
        for record in self.records:
            if record.path == target:
                return record
        return None


@dataclass(frozen=True)
class DateMismatchAssessment:
    filename_date: Optional[str]          # YYYYMM
    captured_date: Optional[datetime]
    mismatch: bool
    missing_captured_date: bool

    @property
    def reason(self) -> Optional[str]:
        """Short label explaining why the record is flagged, or None."""
        if not self.mismatch:
            return None
        if self.filename_date is None:
            return "no-filename-date"
        if self.missing_captured_date:
            return "missing-captured-date"
        return "month-differs"


class DateSource(str, Enum):
    """Symbolic date sources the orchestrator resolves to a literal date/time."""
    FILENAME = "filename"
    MODIFIED = "modified"
    CREATED = "created"
    CAPTURED = "captured"


DateSpec = Union[str, datetime, DateSource]


@dataclass(frozen=True)
class UpdateRequest:
    target_path: Path
    date_spec: DateSpec


@dataclass(frozen=True)
class Succeeded:
    message: str
    ok = True


@dataclass(frozen=True)
class Failed:
    error: UpdateError
    ok = False

    @property
    def reason(self) -> str:
        return str(self.error)


UpdateOutcome = Union[Succeeded, Failed]
