import os
import logging
import stat
from pathlib import Path
from typing import Iterator, Optional
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor

from .. import config
from ..exceptions import DirectoryAccessError, PerFileStatError
from ..models import Catalog, PhotoRecord
from ..metadata.extract import MetadataExtractor


class DiskScanner:
    def __init__(self, extractor: Optional[MetadataExtractor] = None):
        self.metadata = extractor or MetadataExtractor()

    def scan(self, directory: Path, max_workers: int = 1) -> Catalog:
        """
        Builds a Catalog of the supported images directly inside `directory`.

        Files that vanish or can't be stat'ed mid-scan are logged and left out;
        the catalog keeps the order the OS enumerated the directory in.

        Args:
            max_workers: Threads used for stat + metadata extraction. Results
                         keep enumeration order regardless of this value.
        """
        directory = Path(directory).absolute()
        logging.info(f"Scanning {directory}...")

        candidates = list(self._iter_candidates(directory))

        if max_workers <= 1:
            results = [self._process_single_file(p) for p in candidates]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = list(executor.map(self._process_single_file, candidates))

        records = tuple(r for r in results if r is not None)
        skipped = len(candidates) - len(records)
        logging.info(
            f"Scan complete. {len(records)} photos in {directory}"
            + (f" ({skipped} skipped)" if skipped else "")
        )
        return Catalog(directory_path=directory, records=records, scanned_at=datetime.now())

    def _iter_candidates(self, directory: Path) -> Iterator[Path]:
        """Direct children with a supported extension, in enumeration order."""
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise DirectoryAccessError(f"Directory not found: {directory}") from e
        except PermissionError as e:
            raise DirectoryAccessError(f"Permission denied: {directory}") from e
        except OSError as e:
            raise DirectoryAccessError(f"Cannot read directory {directory}: {e}") from e

        for e in entries:
            if is_supported(e.name):
                yield Path(e.path)

    def _process_single_file(self, path: Path) -> Optional[PhotoRecord]:
        """Returns a PhotoRecord, or None if the file has to be excluded."""
        try:
            st = self._stat(path)
        except PerFileStatError as e:
            logging.warning(str(e))
            return None

        if not stat.S_ISREG(st.st_mode):
            logging.debug(f"Skipping non-regular file {path}")
            return None

        return PhotoRecord(
            name=path.name,
            path=path,
            created_at=datetime.fromtimestamp(_creation_time(st)),
            modified_at=datetime.fromtimestamp(st.st_mtime),
            size_bytes=st.st_size,
            embedded_metadata=self.metadata.extract(path),
        )

    def _stat(self, path: Path) -> os.stat_result:
        try:
            return os.stat(path)
        except OSError as e:
            raise PerFileStatError(f"Error reading stats for {path}: {e}") from e


def is_supported(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in config.SUPPORTED_EXTS


def _creation_time(st: os.stat_result) -> float:
    # st_birthtime exists on macOS/BSD (and Windows on 3.12+); ctime elsewhere
    return getattr(st, 'st_birthtime', st.st_ctime)
