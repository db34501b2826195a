"""
Abstract interface for the remote storage collaborator.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from .models import RemoteEntry


class RemoteStorageClientInterface(ABC):
    """
    Abstract interface for a remote hierarchical file store.

    Implementations own transport, pagination, credentials and retry policy.
    All failures are raised as RemoteStorageError subclasses.
    """

    @abstractmethod
    def ensure_authenticated(self) -> None:
        """
        Validate or refresh credentials.

        Idempotent: a cached, valid credential is reused.
        """
        pass

    @abstractmethod
    def list_children(self, folder_id: str) -> Iterator[RemoteEntry]:
        """
        List the direct children of a folder.

        Args:
            folder_id: Remote identifier of the folder

        Yields:
            RemoteEntry objects across all pages, in listing order
        """
        pass

    @abstractmethod
    def upload(self, path: Path, folder_id: Optional[str] = None) -> tuple[str, bool]:
        """
        Upload a local file.

        Args:
            path: Local file to upload
            folder_id: Target folder, or None for the drive root

        Returns:
            Tuple of (remote_id, already_shared)
        """
        pass

    @abstractmethod
    def share(self, remote_id: str) -> None:
        """Grant public read access to a file. Idempotent."""
        pass
