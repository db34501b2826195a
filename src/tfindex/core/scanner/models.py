"""
Data models for the remote tree scanner.
"""

from dataclasses import dataclass

# Bytes left unescaped by percent-encoding (ASCII letters and digits only)
_UNRESERVED: frozenset[int] = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)

# Mime type Google Drive uses for folders
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Locator scheme understood by the Tinfoil reader for Drive files
LOCATOR_SCHEME = "gdrive"


def percent_encode(name: str) -> str:
    """Percent-encode every UTF-8 byte of ``name`` that is not alphanumeric."""
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:02X}"
        for byte in name.encode("utf-8")
    )


@dataclass(frozen=True)
class FileDescriptor:
    """
    A file as reported by the remote store.

    Attributes:
        id: Opaque remote identifier
        name: Display name
        size: File size as decimal text (parsed later by the manifest builder)
        shared: Whether the file is already publicly readable
    """

    id: str
    name: str
    size: str
    shared: bool = False


@dataclass(frozen=True)
class RemoteEntry:
    """One child of a remote folder: either a file or a sub-folder."""

    descriptor: FileDescriptor
    is_folder: bool = False


@dataclass(frozen=True)
class ParsedFile:
    """A FileDescriptor with its derived, percent-encoded name."""

    descriptor: FileDescriptor

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def size(self) -> str:
        return self.descriptor.size

    @property
    def shared(self) -> bool:
        return self.descriptor.shared

    @property
    def name_encoded(self) -> str:
        return percent_encode(self.descriptor.name)

    @property
    def locator(self) -> str:
        """Tinfoil locator: ``gdrive:<id>#<percent-encoded name>``."""
        return f"{LOCATOR_SCHEME}:{self.id}#{self.name_encoded}"
