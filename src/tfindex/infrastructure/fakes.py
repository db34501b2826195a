"""
Fake implementations for testing.

Provides an in-memory implementation of the remote storage interface for
use in unit and integration tests without network access.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tfindex.core.scanner.interfaces import RemoteStorageClientInterface
from tfindex.core.scanner.models import FileDescriptor, RemoteEntry
from tfindex.infrastructure.drive.errors import AuthenticationError, NonRetryableError


@dataclass
class _Node:
    descriptor: FileDescriptor
    is_folder: bool
    children: list[str] = field(default_factory=list)
    content: bytes = b""


class InMemoryRemoteStorage(RemoteStorageClientInterface):
    """
    In-memory remote store for testing.

    Folders and files are addressed by id. Listings are served in insertion
    order, split into pages of ``page_size`` to exercise pagination. Call
    counters and failure injection let tests observe client usage.
    """

    ROOT_ID = "root"

    def __init__(self, page_size: int = 2):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        self._page_size = page_size
        self._nodes: dict[str, _Node] = {
            self.ROOT_ID: _Node(FileDescriptor(self.ROOT_ID, "My Drive", ""), is_folder=True)
        }
        self._next_id = 0

        self.auth_calls = 0
        self.list_calls: list[str] = []
        self.page_requests = 0
        self.shared_ids: list[str] = []
        self.uploads: list[tuple[str, Optional[str]]] = []

        self.fail_auth = False
        self.fail_on_folder: Optional[str] = None

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}{self._next_id:04d}"

    def add_folder(self, name: str, parent_id: Optional[str] = None, folder_id: Optional[str] = None) -> str:
        """Create a folder and return its id."""
        folder_id = folder_id or self._new_id("folder")
        self._nodes[folder_id] = _Node(FileDescriptor(folder_id, name, ""), is_folder=True)
        if parent_id is not None:
            self._nodes[parent_id].children.append(folder_id)
        return folder_id

    def add_file(
        self,
        parent_id: str,
        name: str,
        size: int | str = 0,
        shared: bool = False,
        file_id: Optional[str] = None,
    ) -> str:
        """Create a file inside ``parent_id`` and return its id."""
        file_id = file_id or self._new_id("file")
        descriptor = FileDescriptor(id=file_id, name=name, size=str(size), shared=shared)
        self._nodes[file_id] = _Node(descriptor, is_folder=False)
        self._nodes[parent_id].children.append(file_id)
        return file_id

    def link(self, parent_id: str, child_id: str) -> None:
        """Give an existing node an additional parent."""
        self._nodes[parent_id].children.append(child_id)

    def get(self, remote_id: str) -> FileDescriptor:
        return self._nodes[remote_id].descriptor

    def content(self, remote_id: str) -> bytes:
        return self._nodes[remote_id].content

    def ensure_authenticated(self) -> None:
        self.auth_calls += 1
        if self.fail_auth:
            raise AuthenticationError("Injected authentication failure")

    def list_children(self, folder_id: str) -> Iterator[RemoteEntry]:
        self.list_calls.append(folder_id)
        if folder_id == self.fail_on_folder:
            raise NonRetryableError(f"Injected listing failure for {folder_id}")

        node = self._nodes.get(folder_id)
        if node is None or not node.is_folder:
            raise NonRetryableError(f"Folder not found: {folder_id}")

        children = list(node.children)
        for start in range(0, max(len(children), 1), self._page_size):
            self.page_requests += 1
            for child_id in children[start : start + self._page_size]:
                child = self._nodes[child_id]
                yield RemoteEntry(descriptor=child.descriptor, is_folder=child.is_folder)

    def upload(self, path: Path, folder_id: Optional[str] = None) -> tuple[str, bool]:
        path = Path(path)
        parent_id = folder_id or self.ROOT_ID
        self.uploads.append((path.name, folder_id))

        for child_id in self._nodes[parent_id].children:
            child = self._nodes[child_id]
            if not child.is_folder and child.descriptor.name == path.name:
                child.content = path.read_bytes()
                return child_id, child.descriptor.shared

        file_id = self.add_file(parent_id, path.name, size=path.stat().st_size)
        self._nodes[file_id].content = path.read_bytes()
        return file_id, False

    def share(self, remote_id: str) -> None:
        node = self._nodes.get(remote_id)
        if node is None:
            raise NonRetryableError(f"File not found: {remote_id}")
        self.shared_ids.append(remote_id)
        d = node.descriptor
        node.descriptor = FileDescriptor(id=d.id, name=d.name, size=d.size, shared=True)
