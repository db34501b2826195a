"""
Remote tree scanning and file filtering.
"""

from .filters import DEFAULT_EXTENSIONS, TITLE_ID_PATTERN, FileFilter
from .interfaces import RemoteStorageClientInterface
from .models import (
    FOLDER_MIME_TYPE,
    LOCATOR_SCHEME,
    FileDescriptor,
    ParsedFile,
    RemoteEntry,
    percent_encode,
)
from .scanner import RemoteTreeScanner, scan_folders

__all__ = [
    # Models
    "FileDescriptor",
    "ParsedFile",
    "RemoteEntry",
    "percent_encode",
    # Filter
    "FileFilter",
    "DEFAULT_EXTENSIONS",
    "TITLE_ID_PATTERN",
    # Scanner
    "RemoteStorageClientInterface",
    "RemoteTreeScanner",
    "scan_folders",
    # Constants
    "FOLDER_MIME_TYPE",
    "LOCATOR_SCHEME",
]
