"""
Tinfoil index document model and builder.
"""

from .builder import ManifestBuilder, build_manifest, parse_size
from .models import WIRE_NAMES, FileEntry, Manifest, ManifestOptions

__all__ = [
    "FileEntry",
    "Manifest",
    "ManifestOptions",
    "ManifestBuilder",
    "build_manifest",
    "parse_size",
    "WIRE_NAMES",
]
