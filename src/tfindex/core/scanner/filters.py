"""
Accept/reject predicate for scanned files.
"""

import logging
import re
from collections.abc import Iterable

from .models import ParsedFile

logger = logging.getLogger(__name__)

# Archive extensions Tinfoil can install
DEFAULT_EXTENSIONS: tuple[str, ...] = (".nsp", ".nsz", ".xci", ".xcz")

# Percent-encoded form of a bracketed title id, e.g. [0100000000010000]
TITLE_ID_PATTERN = re.compile(r"%5B[0-9A-Fa-f]{16}%5D")


class FileFilter:
    """
    Binary predicate over ParsedFile objects.

    Two independent policies are ANDed:
    - extension policy: name must end with a known archive extension
      (case-insensitive), unless ``allow_any_extension`` is set
    - title id policy: the percent-encoded name must contain a bracketed
      16-hex-digit title id, unless ``allow_missing_title_id`` is set
    """

    def __init__(
        self,
        allow_any_extension: bool = False,
        allow_missing_title_id: bool = False,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ):
        self._allow_any_extension = allow_any_extension
        self._allow_missing_title_id = allow_missing_title_id
        self._extensions = tuple(ext.lower() for ext in extensions)

    def has_valid_extension(self, file: ParsedFile) -> bool:
        return file.name.lower().endswith(self._extensions)

    def has_title_id(self, file: ParsedFile) -> bool:
        return TITLE_ID_PATTERN.search(file.name_encoded) is not None

    def __call__(self, file: ParsedFile) -> bool:
        if not self._allow_any_extension and not self.has_valid_extension(file):
            logger.debug(f"Rejected (extension): {file.name}")
            return False
        if not self._allow_missing_title_id and not self.has_title_id(file):
            logger.debug(f"Rejected (no title id): {file.name}")
            return False
        return True

    def apply(self, files: Iterable[ParsedFile]) -> list[ParsedFile]:
        """Return the accepted files, preserving order."""
        return [file for file in files if self(file)]
