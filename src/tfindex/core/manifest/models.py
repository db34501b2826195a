"""
Data models for the Tinfoil index document.

Every optional field uses ``None`` to mean "not configured". Unset fields
are left out of the serialized document entirely, because the reader
checks for field presence rather than for empty values.
"""

import json
import math
from dataclasses import dataclass, fields
from typing import Any, Iterator, Optional

from tfindex.core.errors import ConfigurationError

# Attribute name -> key used in the serialized document
WIRE_NAMES: dict[str, str] = {
    "files": "files",
    "directories": "directories",
    "success": "success",
    "referrer": "referrer",
    "google_api_key": "googleApiKey",
    "one_fichier_keys": "oneFichierKeys",
    "headers": "headers",
    "version": "version",
    "theme_blacklist": "themeBlackList",
    "theme_whitelist": "themeWhiteList",
    "theme_error": "themeError",
}

# Fields that must never appear in log output
SECRET_FIELDS: frozenset[str] = frozenset(["google_api_key", "one_fichier_keys", "headers"])


@dataclass(frozen=True)
class FileEntry:
    """One downloadable file of the index.

    Attributes:
        url: Locator string, ``gdrive:<id>#<percent-encoded name>``
        size: File size in bytes
    """

    url: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "size": self.size}


def parse_version(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid minimum version: {value!r}")
    try:
        version = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid minimum version: {value!r}") from e
    if not math.isfinite(version):
        raise ConfigurationError(f"Minimum version must be a finite number: {value!r}")
    return version


@dataclass
class ManifestOptions:
    """Reader metadata copied verbatim into the index when configured."""

    directories: Optional[list[str]] = None
    success: Optional[str] = None
    referrer: Optional[str] = None
    google_api_key: Optional[str] = None
    one_fichier_keys: Optional[list[str]] = None
    headers: Optional[list[str]] = None
    version: Optional[float] = None
    theme_blacklist: Optional[list[str]] = None
    theme_whitelist: Optional[list[str]] = None
    theme_error: Optional[str] = None

    def __post_init__(self) -> None:
        self.version = parse_version(self.version)

    def configured(self) -> Iterator[tuple[str, Any]]:
        """Yield (attribute, value) for every option that was set."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield f.name, value


@dataclass
class Manifest:
    """The Tinfoil index document."""

    files: Optional[list[FileEntry]] = None
    directories: Optional[list[str]] = None
    success: Optional[str] = None
    referrer: Optional[str] = None
    google_api_key: Optional[str] = None
    one_fichier_keys: Optional[list[str]] = None
    headers: Optional[list[str]] = None
    version: Optional[float] = None
    theme_blacklist: Optional[list[str]] = None
    theme_whitelist: Optional[list[str]] = None
    theme_error: Optional[str] = None

    def present_fields(self) -> list[str]:
        """Wire names of the fields that will be serialized."""
        return [WIRE_NAMES[f.name] for f in fields(self) if getattr(self, f.name) is not None]

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict, omitting unset fields."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "files":
                value = [entry.to_dict() for entry in value]
            elif isinstance(value, list):
                value = list(value)
            data[WIRE_NAMES[f.name]] = value
        return data

    def to_json(self) -> str:
        """Serialize to compact JSON text."""
        return json.dumps(
            self.to_dict(), ensure_ascii=False, allow_nan=False, separators=(",", ":")
        )

    def to_bytes(self) -> bytes:
        """Serialize to UTF-8 encoded JSON."""
        return self.to_json().encode("utf-8")
