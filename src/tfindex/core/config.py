"""
Configuration module for tfindex.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union, get_args, get_origin

import yaml

from tfindex.core.container.compression import CompressionAlgorithm
from tfindex.core.errors import ConfigurationError
from tfindex.core.manifest.models import ManifestOptions, parse_version

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {}) or {}
    return section_defaults.get(key, fallback)


@dataclass
class DriveConfig:
    """Configuration for the Google Drive client."""

    credentials_path: str = field(
        default_factory=lambda: _get_default("drive", "credentials_path", "credentials.json")
    )
    token_path: str = field(
        default_factory=lambda: _get_default("drive", "token_path", "token.json")
    )
    timeout: float = field(default_factory=lambda: _get_default("drive", "timeout", 30.0))
    max_retries: int = field(default_factory=lambda: _get_default("drive", "max_retries", 3))
    page_size: int = field(default_factory=lambda: _get_default("drive", "page_size", 1000))


@dataclass
class ScanConfig:
    """Configuration for folder scanning and filtering."""

    recursive: bool = field(default_factory=lambda: _get_default("scan", "recursive", True))
    add_non_nsw_files: bool = field(
        default_factory=lambda: _get_default("scan", "add_non_nsw_files", False)
    )
    add_nsw_files_without_title_id: bool = field(
        default_factory=lambda: _get_default("scan", "add_nsw_files_without_title_id", False)
    )
    extensions: list[str] = field(
        default_factory=lambda: list(
            _get_default("scan", "extensions", [".nsp", ".nsz", ".xci", ".xcz"])
        )
    )
    max_workers: int = field(default_factory=lambda: _get_default("scan", "max_workers", 1))


@dataclass
class OutputConfig:
    """Configuration for the written index file."""

    path: str = field(default_factory=lambda: _get_default("output", "path", "index.tlf"))
    compression: str = field(
        default_factory=lambda: _get_default("output", "compression", "zstd")
    )
    compression_level: Optional[int] = field(
        default_factory=lambda: _get_default("output", "compression_level", None)
    )
    public_key_path: Optional[str] = field(
        default_factory=lambda: _get_default("output", "public_key_path", None)
    )

    def __post_init__(self) -> None:
        # YAML reads a bare `off` as False
        if self.compression is False:
            self.compression = "off"

    @property
    def compression_algorithm(self) -> CompressionAlgorithm:
        return CompressionAlgorithm.from_name(self.compression)


@dataclass
class UploadConfig:
    """Configuration for sharing and uploading after the index is written."""

    share_files: bool = field(default_factory=lambda: _get_default("upload", "share_files", False))
    share_index: bool = field(default_factory=lambda: _get_default("upload", "share_index", False))
    upload_folder_id: Optional[str] = field(
        default_factory=lambda: _get_default("upload", "upload_folder_id", None)
    )
    upload_my_drive: bool = field(
        default_factory=lambda: _get_default("upload", "upload_my_drive", False)
    )

    @property
    def enabled(self) -> bool:
        return self.upload_my_drive or self.upload_folder_id is not None


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default("logging", "format", "%(message)s")
    )


@dataclass
class TfIndexConfig:
    """Main configuration class for tfindex."""

    drive: DriveConfig = field(default_factory=DriveConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    manifest: ManifestOptions = field(default_factory=ManifestOptions)
    output: OutputConfig = field(default_factory=OutputConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "TfIndexConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            TfIndexConfig instance with loaded values

        Raises:
            ConfigurationError: If the file is missing, unparsable or has an
                                unsupported format
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif path.suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                raise ConfigurationError(f"Unsupported config file format: {path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to parse configuration {path}: {e}") from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "TfIndexConfig":
        """Create TfIndexConfig from a dictionary."""
        config = cls()
        sections = {
            "drive": DriveConfig,
            "scan": ScanConfig,
            "manifest": ManifestOptions,
            "output": OutputConfig,
            "upload": UploadConfig,
            "logging": LoggingConfig,
        }

        for name, section_cls in sections.items():
            if name in data:
                try:
                    section = section_cls(**(data[name] or {}))
                except TypeError as e:
                    raise ConfigurationError(f"Invalid '{name}' section: {e}") from e
                _check_types(name, section)
                setattr(config, name, section)

        return config

    def apply_env_overrides(self) -> "TfIndexConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: TFI_<SECTION>_<KEY>
        Examples:
            - TFI_DRIVE_CREDENTIALS_PATH
            - TFI_SCAN_RECURSIVE
            - TFI_MANIFEST_SUCCESS
            - TFI_OUTPUT_COMPRESSION
            - TFI_LOGGING_LEVEL

        List values are comma separated.

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Drive config
            "TFI_DRIVE_CREDENTIALS_PATH": ("drive", "credentials_path", str),
            "TFI_DRIVE_TOKEN_PATH": ("drive", "token_path", str),
            "TFI_DRIVE_TIMEOUT": ("drive", "timeout", float),
            "TFI_DRIVE_MAX_RETRIES": ("drive", "max_retries", int),
            "TFI_DRIVE_PAGE_SIZE": ("drive", "page_size", int),
            # Scan config
            "TFI_SCAN_RECURSIVE": ("scan", "recursive", _parse_bool),
            "TFI_SCAN_ADD_NON_NSW_FILES": ("scan", "add_non_nsw_files", _parse_bool),
            "TFI_SCAN_ADD_NSW_FILES_WITHOUT_TITLE_ID": (
                "scan",
                "add_nsw_files_without_title_id",
                _parse_bool,
            ),
            "TFI_SCAN_MAX_WORKERS": ("scan", "max_workers", int),
            # Manifest options
            "TFI_MANIFEST_DIRECTORIES": ("manifest", "directories", _parse_list),
            "TFI_MANIFEST_SUCCESS": ("manifest", "success", str),
            "TFI_MANIFEST_REFERRER": ("manifest", "referrer", str),
            "TFI_MANIFEST_GOOGLE_API_KEY": ("manifest", "google_api_key", str),
            "TFI_MANIFEST_ONE_FICHIER_KEYS": ("manifest", "one_fichier_keys", _parse_list),
            "TFI_MANIFEST_HEADERS": ("manifest", "headers", _parse_list),
            "TFI_MANIFEST_VERSION": ("manifest", "version", parse_version),
            "TFI_MANIFEST_THEME_BLACKLIST": ("manifest", "theme_blacklist", _parse_list),
            "TFI_MANIFEST_THEME_WHITELIST": ("manifest", "theme_whitelist", _parse_list),
            "TFI_MANIFEST_THEME_ERROR": ("manifest", "theme_error", str),
            # Output config
            "TFI_OUTPUT_PATH": ("output", "path", str),
            "TFI_OUTPUT_COMPRESSION": ("output", "compression", str),
            "TFI_OUTPUT_COMPRESSION_LEVEL": ("output", "compression_level", int),
            "TFI_OUTPUT_PUBLIC_KEY_PATH": ("output", "public_key_path", str),
            # Upload config
            "TFI_UPLOAD_SHARE_FILES": ("upload", "share_files", _parse_bool),
            "TFI_UPLOAD_SHARE_INDEX": ("upload", "share_index", _parse_bool),
            "TFI_UPLOAD_UPLOAD_FOLDER_ID": ("upload", "upload_folder_id", str),
            "TFI_UPLOAD_UPLOAD_MY_DRIVE": ("upload", "upload_my_drive", _parse_bool),
            # Logging config
            "TFI_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                try:
                    setattr(section_obj, key, converter(value))
                except ValueError as e:
                    raise ConfigurationError(f"Invalid value for {env_var}: {value!r}") from e

        return self

    def validate(self, require_credentials: bool = True) -> "TfIndexConfig":
        """
        Check the configuration before any network or file activity.

        Args:
            require_credentials: Whether the Drive client secret file must exist

        Raises:
            ConfigurationError: If the configuration cannot be used
        """
        if require_credentials and not Path(self.drive.credentials_path).exists():
            raise ConfigurationError(
                f"Google credentials file not found: {self.drive.credentials_path}"
            )

        try:
            self.output.compression_algorithm
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.scan.max_workers < 1:
            raise ConfigurationError("scan.max_workers must be at least 1")

        if self.upload.share_index and not self.upload.enabled:
            logger.warning("share_index has no effect without an upload destination")

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ConfigurationError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ConfigurationError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _check_types(section_name: str, section: Any) -> None:
    """
    Check loaded values against the section's annotations.

    Integers are accepted for float fields and converted in place.

    Raises:
        ConfigurationError: If a value has the wrong type
    """
    for f in fields(section):
        value = getattr(section, f.name)
        expected = f.type
        optional = get_origin(expected) is Union
        if optional:
            expected = next(arg for arg in get_args(expected) if arg is not type(None))

        if value is None:
            if optional:
                continue
        else:
            origin = get_origin(expected) or expected
            if origin is float and isinstance(value, int) and not isinstance(value, bool):
                setattr(section, f.name, float(value))
                continue
            if isinstance(value, origin) and (origin is bool or not isinstance(value, bool)):
                if origin is not list or all(isinstance(item, str) for item in value):
                    continue

        raise ConfigurationError(
            f"Invalid value for {section_name}.{f.name}: {value!r} "
            f"(expected {getattr(expected, '__name__', expected)})"
        )


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma separated string to a list, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> TfIndexConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        TfIndexConfig instance
    """
    if config_path:
        config = TfIndexConfig.from_file(config_path)
    else:
        config = TfIndexConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
