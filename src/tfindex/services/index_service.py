"""
Index service: orchestrates one index run.

validate -> load key -> scan -> filter -> build -> encode -> write
-> share files -> upload index -> share index
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import rsa

from tfindex.core.config import TfIndexConfig
from tfindex.core.container import (
    CompressionAlgorithm,
    encode_manifest,
    load_public_key,
    write_atomic,
)
from tfindex.core.manifest import Manifest, ManifestBuilder
from tfindex.core.scanner import (
    FileFilter,
    ParsedFile,
    RemoteStorageClientInterface,
    RemoteTreeScanner,
)

logger = logging.getLogger(__name__)

# (current, total, message); total is None while the total is unknown
ProgressCallback = Callable[[int, Optional[int], str], None]


@dataclass
class IndexRunResult:
    """Summary of a completed index run."""

    output_path: Path
    total_files: int
    compression: CompressionAlgorithm
    encrypted: bool
    duration_seconds: float
    shared_files: int = 0
    uploaded_id: Optional[str] = None
    index_shared: bool = False


class IndexService:
    """
    Runs the index pipeline against a remote storage client.

    Every stage raises on failure; nothing is written when scanning,
    building or key loading fails.
    """

    def __init__(
        self,
        client: RemoteStorageClientInterface,
        config: TfIndexConfig,
        scanner: Optional[RemoteTreeScanner] = None,
        file_filter: Optional[FileFilter] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the service.

        Args:
            client: Remote storage client
            config: Run configuration
            scanner: Scanner to use; built from ``config.scan`` when None
            file_filter: Filter to use; built from ``config.scan`` when None
            progress_callback: Optional progress reporter
        """
        self._client = client
        self._config = config
        self._progress_callback = progress_callback
        self._scanner = scanner or RemoteTreeScanner(
            client,
            recursive=config.scan.recursive,
            max_workers=config.scan.max_workers,
            progress_callback=self._report_scanned,
        )
        self._file_filter = file_filter or FileFilter(
            allow_any_extension=config.scan.add_non_nsw_files,
            allow_missing_title_id=config.scan.add_nsw_files_without_title_id,
            extensions=config.scan.extensions,
        )
        self._builder = ManifestBuilder(config.manifest)

    def _report(self, current: int, total: Optional[int], message: str) -> None:
        if self._progress_callback is not None:
            self._progress_callback(current, total, message)

    def _report_scanned(self, found: int) -> None:
        self._report(found, None, f"Scanning... {found} files found")

    def load_public_key(self) -> Optional[rsa.RSAPublicKey]:
        """Load the configured public key, or None when encryption is off."""
        key_path = self._config.output.public_key_path
        if not key_path:
            return None
        return load_public_key(key_path)

    def scan(self, folder_ids: Sequence[str]) -> list[ParsedFile]:
        """Scan the folders and return the files accepted by the filter."""
        return self._scanner.scan_parsed(folder_ids, self._file_filter)

    def build(self, files: Sequence[ParsedFile]) -> Manifest:
        return self._builder.build(files)

    def write(
        self, manifest: Manifest, public_key: Optional[rsa.RSAPublicKey] = None
    ) -> Path:
        """Encode the manifest and write it atomically to the output path."""
        output = self._config.output
        data = encode_manifest(
            manifest,
            output.compression_algorithm,
            public_key=public_key,
            level=output.compression_level,
        )
        path = write_atomic(output.path, data)
        logger.info(
            f"Finished writing {path.name} to disk, using "
            f"{output.compression_algorithm.label} compression & "
            f"{'' if public_key is not None else 'no '}encryption"
        )
        return path

    def share_files(self, files: Sequence[ParsedFile]) -> int:
        """Share every file not already public. Returns the number shared."""
        pending = [file for file in files if not file.shared]
        total = len(files)

        for done, file in enumerate(files, start=1):
            if not file.shared:
                self._client.share(file.id)
            self._report(done, total, "Sharing")

        logger.info(f"Finished sharing ({len(pending)} of {total} files needed sharing)")
        return len(pending)

    def upload_index(self, path: Path) -> tuple[str, bool]:
        """Upload the written index to the configured Drive destination."""
        folder_id = self._config.upload.upload_folder_id
        remote_id, shared = self._client.upload(path, folder_id)
        logger.info(f"Uploaded index to {folder_id or 'My Drive'}")
        return remote_id, shared

    def run(self, folder_ids: Sequence[str]) -> IndexRunResult:
        """
        Execute a complete index run.

        Args:
            folder_ids: Root folder identifiers to scan

        Returns:
            IndexRunResult describing what was produced

        Raises:
            TfIndexError: On any fatal condition
        """
        start = time.monotonic()
        upload = self._config.upload

        # Key problems must surface before any network or file activity
        public_key = self.load_public_key()

        files = self.scan(folder_ids)
        manifest = self.build(files)
        path = self.write(manifest, public_key)

        result = IndexRunResult(
            output_path=path,
            total_files=len(files),
            compression=self._config.output.compression_algorithm,
            encrypted=public_key is not None,
            duration_seconds=0.0,
        )

        if upload.share_files:
            result.shared_files = self.share_files(files)

        if upload.enabled:
            remote_id, shared = self.upload_index(path)
            result.uploaded_id = remote_id
            if upload.share_index:
                if not shared:
                    self._client.share(remote_id)
                result.index_shared = True
                logger.info("Shared index file")

        result.duration_seconds = time.monotonic() - start
        return result
