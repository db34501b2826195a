"""
Core Layer - Scanning, filtering, index building and container encoding.
"""

from tfindex.core.config import (
    DriveConfig,
    LoggingConfig,
    OutputConfig,
    ScanConfig,
    TfIndexConfig,
    UploadConfig,
    load_config,
)
from tfindex.core.container import (
    CompressionAlgorithm,
    ContainerFormatError,
    encode_manifest,
    unpack_container,
    write_atomic,
)
from tfindex.core.errors import (
    ConfigurationError,
    EncryptionKeyError,
    OutputWriteError,
    SizeParseError,
    TfIndexError,
)
from tfindex.core.manifest import (
    FileEntry,
    Manifest,
    ManifestBuilder,
    ManifestOptions,
    build_manifest,
)
from tfindex.core.scanner import (
    FileDescriptor,
    FileFilter,
    ParsedFile,
    RemoteEntry,
    RemoteStorageClientInterface,
    RemoteTreeScanner,
)

__all__ = [
    # Config
    "TfIndexConfig",
    "DriveConfig",
    "ScanConfig",
    "OutputConfig",
    "UploadConfig",
    "LoggingConfig",
    "load_config",
    # Errors
    "TfIndexError",
    "ConfigurationError",
    "SizeParseError",
    "EncryptionKeyError",
    "OutputWriteError",
    # Scanner
    "FileDescriptor",
    "ParsedFile",
    "RemoteEntry",
    "RemoteStorageClientInterface",
    "RemoteTreeScanner",
    "FileFilter",
    # Manifest
    "FileEntry",
    "Manifest",
    "ManifestOptions",
    "ManifestBuilder",
    "build_manifest",
    # Container
    "CompressionAlgorithm",
    "ContainerFormatError",
    "encode_manifest",
    "unpack_container",
    "write_atomic",
]
