import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from tqdm import tqdm

from .catalog import CatalogStore
from .exceptions import InProgressError, InvalidDateSpecError
from .models import Catalog, DateMismatchAssessment, DateSpec, PhotoRecord, UpdateOutcome
from .reconcile.dates import assess
from .scanning.filesystem import DiskScanner
from .update.orchestrator import UpdateOrchestrator, normalize_date_spec


class PhotoDaterApp:
    """
    Wires the scan -> assess -> update -> re-scan cycle together around a
    single live catalog.
    """

    def __init__(self,
                 writer_command: Optional[Iterable[str]] = None,
                 timeout: Optional[float] = None,
                 max_workers: int = 1,
                 scanner: Optional[DiskScanner] = None):
        self.store = CatalogStore(scanner, max_workers=max_workers)
        self.orchestrator = UpdateOrchestrator(
            command=writer_command,
            on_success=self._refresh_after_update,
            timeout=timeout,
        )

    @property
    def catalog(self) -> Optional[Catalog]:
        return self.store.current

    def open_directory(self, directory: Path) -> Catalog:
        return self.store.load(directory)

    def assessments(self, mismatches_only: bool = False) -> List[Tuple[PhotoRecord, DateMismatchAssessment]]:
        catalog = self.store.current
        if catalog is None:
            return []
        pairs = [(rec, assess(rec)) for rec in catalog.records]
        if mismatches_only:
            pairs = [(rec, a) for rec, a in pairs if a.mismatch]
        return pairs

    async def update_date(self,
                          path: Path,
                          date_spec: DateSpec,
                          timeout: Optional[float] = None) -> Tuple[UpdateOutcome, Optional[DateMismatchAssessment]]:
        """
        Runs one update. On success the directory has been re-scanned by the
        time this returns, and the assessment is recomputed from the new
        snapshot; on failure the catalog is untouched and the assessment is
        that of the current record.
        """
        path = Path(path).absolute()
        if self.store.current is None or self.store.directory != path.parent:
            self.open_directory(path.parent)

        record = self.store.current.find(path)
        outcome = await self.orchestrator.request_update(path, date_spec, record=record, timeout=timeout)

        refreshed = self.store.current.find(path)
        return outcome, (assess(refreshed) if refreshed is not None else None)

    async def fix_mismatches(self, date_spec: DateSpec, timeout: Optional[float] = None) -> List[Tuple[PhotoRecord, UpdateOutcome]]:
        """
        Applies `date_spec` to every flagged record that can resolve it.
        Records already being updated elsewhere are skipped. The batch's own
        updates do not re-scan one by one; the directory is re-scanned once
        at the end if any of them succeeded.
        """
        directory = self.store.directory
        pending = []
        for rec, _ in self.assessments(mismatches_only=True):
            try:
                normalize_date_spec(date_spec, rec, rec.path)
            except InvalidDateSpecError as e:
                logging.info(f"Skipping {rec.name}: {e}")
                continue
            pending.append(rec)

        results = []
        try:
            for rec in tqdm(pending, desc="Updating"):
                try:
                    outcome = await self.orchestrator.request_update(
                        rec.path, date_spec, record=rec, timeout=timeout, refresh=False)
                except InProgressError as e:
                    logging.warning(f"Skipping {rec.name}: {e}")
                    continue
                results.append((rec, outcome))
        finally:
            if any(outcome.ok for _, outcome in results):
                logging.info(f"Refreshing catalog of {directory} after {len(results)} updates")
                await asyncio.to_thread(self.store.load, directory)
        return results

    async def _refresh_after_update(self, path: Path):
        # Re-scan the photo's own directory even if another one was opened meanwhile
        logging.info(f"Refreshing catalog after update of {path.name}")
        await asyncio.to_thread(self.store.load, Path(path).parent)
