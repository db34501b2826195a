"""
Remote tree scanner: walks folder identifiers and collects file descriptors.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .filters import FileFilter
from .interfaces import RemoteStorageClientInterface
from .models import FileDescriptor, ParsedFile

logger = logging.getLogger(__name__)


class RemoteTreeScanner:
    """
    Flattens remote folder trees into an ordered list of FileDescriptors.

    Ordering is deterministic: roots are processed in input order, entries
    within a folder in listing order, and a sub-folder's files appear at the
    position of the sub-folder itself. Errors from the client propagate; a
    partial listing is never returned.
    """

    def __init__(
        self,
        client: RemoteStorageClientInterface,
        recursive: bool = True,
        max_workers: int = 1,
        progress_callback: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialize the scanner.

        Args:
            client: Remote storage client used for listing
            recursive: Visit child folders transitively when True, otherwise
                       only list the direct children of each root
            max_workers: Number of roots scanned concurrently. Results are
                         still merged in input order.
            progress_callback: Called with the running count of files found
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._client = client
        self._recursive = recursive
        self._max_workers = max_workers
        self._progress_callback = progress_callback
        self._found = 0
        self._lock = threading.Lock()

    def scan(self, folder_ids: Sequence[str]) -> list[FileDescriptor]:
        """
        Scan every root folder and return all files found.

        Args:
            folder_ids: Root folder identifiers, in the order to process them

        Returns:
            Flattened list of FileDescriptors

        Raises:
            RemoteStorageError: If authentication or any listing call fails
        """
        self._found = 0

        # Authenticate once per run, before the first listing call
        self._client.ensure_authenticated()

        if self._max_workers == 1 or len(folder_ids) <= 1:
            per_root = [self._scan_root(folder_id) for folder_id in folder_ids]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                # Executor.map yields in submission order, not completion order
                per_root = list(executor.map(self._scan_root, folder_ids))

        files = [descriptor for root_files in per_root for descriptor in root_files]
        logger.info(f"Scanned {len(files)} files in {len(folder_ids)} folder(s)")
        return files

    def scan_parsed(
        self, folder_ids: Sequence[str], file_filter: Optional[FileFilter] = None
    ) -> list[ParsedFile]:
        """Scan, wrap into ParsedFile and apply an optional filter."""
        parsed = [ParsedFile(descriptor) for descriptor in self.scan(folder_ids)]
        if file_filter is None:
            return parsed

        kept = file_filter.apply(parsed)
        logger.debug(f"Filter kept {len(kept)} of {len(parsed)} files")
        return kept

    def _scan_root(self, folder_id: str) -> list[FileDescriptor]:
        logger.debug(f"Scanning root folder {folder_id}")
        visited: set[str] = set()
        return list(self._walk(folder_id, visited))

    def _walk(self, folder_id: str, visited: set[str]) -> Iterator[FileDescriptor]:
        if folder_id in visited:
            logger.debug(f"Skipping already visited folder: {folder_id}")
            return
        visited.add(folder_id)

        # Finish every page of this folder before descending
        entries = list(self._client.list_children(folder_id))

        for entry in entries:
            if entry.is_folder:
                if self._recursive:
                    yield from self._walk(entry.descriptor.id, visited)
                continue

            with self._lock:
                self._found += 1
                found = self._found
            if self._progress_callback is not None:
                self._progress_callback(found)
            yield entry.descriptor


def scan_folders(
    client: RemoteStorageClientInterface,
    folder_ids: Iterable[str],
    recursive: bool = True,
) -> list[FileDescriptor]:
    """Convenience wrapper for a single sequential scan."""
    return RemoteTreeScanner(client, recursive=recursive).scan(list(folder_ids))
