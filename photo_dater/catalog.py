"""
Owner of the live Catalog snapshot.
"""
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .models import Catalog
from .scanning.filesystem import DiskScanner


class CatalogStore:
    """
    Holds exactly one live Catalog. Scans build a complete new Catalog and
    swap it in under a lock, so readers only ever see whole snapshots.
    """

    def __init__(self, scanner: Optional[DiskScanner] = None, max_workers: int = 1):
        self.scanner = scanner or DiskScanner()
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._current: Optional[Catalog] = None
        self._version = 0

    @property
    def current(self) -> Optional[Catalog]:
        return self._current

    @property
    def directory(self) -> Optional[Path]:
        return self._current.directory_path if self._current is not None else None

    def load(self, directory: Path) -> Catalog:
        """Scans `directory` and makes the result the live catalog."""
        catalog = self.scanner.scan(directory, max_workers=self.max_workers)
        return self.replace(catalog)

    def refresh(self) -> Catalog:
        """Re-scans the directory of the live catalog."""
        if self._current is None:
            raise RuntimeError("No catalog loaded; call load() first")
        return self.load(self._current.directory_path)

    def replace(self, catalog: Catalog) -> Catalog:
        with self._lock:
            self._version += 1
            snapshot = replace(catalog, version=self._version)
            self._current = snapshot
        logging.debug(f"Catalog v{snapshot.version}: {len(snapshot)} records for {snapshot.directory_path}")
        return snapshot
