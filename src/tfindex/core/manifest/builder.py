"""
Builds the Tinfoil index document from filtered files and reader metadata.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from tfindex.core.errors import SizeParseError
from tfindex.core.scanner.models import ParsedFile

from .models import SECRET_FIELDS, FileEntry, Manifest, ManifestOptions

logger = logging.getLogger(__name__)

_U64_MAX = 2**64 - 1


def parse_size(file: ParsedFile) -> int:
    """
    Parse a descriptor's decimal size text.

    Only ASCII digits are accepted, and the value must fit in an unsigned
    64-bit integer.

    Raises:
        SizeParseError: If the size is empty, non-numeric or overflows
    """
    raw = file.size
    if not raw or not raw.isascii() or not raw.isdigit():
        raise SizeParseError(file.id, file.name, raw)

    size = int(raw, 10)
    if size > _U64_MAX:
        raise SizeParseError(file.id, file.name, raw)
    return size


class ManifestBuilder:
    """Assembles a Manifest; pure apart from debug logging."""

    def __init__(self, options: Optional[ManifestOptions] = None):
        self._options = options or ManifestOptions()

    def build(self, files: Iterable[ParsedFile]) -> Manifest:
        """
        Build the index document.

        Args:
            files: Filtered files, in the order they should appear

        Returns:
            Manifest with ``files`` set and every configured option copied

        Raises:
            SizeParseError: If any file has a malformed size
        """
        entries = [FileEntry(url=file.locator, size=parse_size(file)) for file in files]
        manifest = Manifest(files=entries)
        logger.debug(f"Added {len(entries)} files to index")

        for name, value in self._options.configured():
            setattr(manifest, name, list(value) if isinstance(value, list) else value)
            if name in SECRET_FIELDS:
                logger.debug(f"Added {name} to index")
            else:
                logger.debug(f"Added {name} to index: {value!r}")

        logger.info("Generated index successfully")
        return manifest


def build_manifest(
    files: Iterable[ParsedFile], options: Optional[ManifestOptions] = None
) -> Manifest:
    """Build a Manifest with a one-off ManifestBuilder."""
    return ManifestBuilder(options).build(files)
