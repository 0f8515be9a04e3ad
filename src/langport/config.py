"""
Configuration file support for langport.

Provides:
- Config dataclasses for holding configuration values
- TOML config file loading (langport.toml)
- Precedence: CLI > config file > defaults
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

# Python 3.11+ has tomllib in stdlib, earlier versions need tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigurationError
from .models import ExportOptions, ImportOptions, SourceToTarget
from .schema import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

# Default config file name
DEFAULT_CONFIG_NAME = "langport.toml"


@dataclass
class PathsConfig:
    """Path configuration."""

    db: Optional[str] = None


@dataclass
class SiteConfig:
    """Site configuration."""

    root_url: str = "/"


@dataclass
class ExportConfig:
    """Export defaults."""

    omit_blank: bool = True
    omit_translated: bool = False
    source_to_target: SourceToTarget = SourceToTarget.OFF
    compact: bool = False
    limit_fields: List[str] = field(default_factory=list)


@dataclass
class ImportConfig:
    """Import defaults."""

    overwrite: bool = False
    confirm_source: bool = False
    update_links: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    log_file: Optional[str] = None


class ConfigError(ConfigurationError):
    """Error loading or parsing configuration."""

    pass


def _bool(section: str, data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"[{section}] {key} must be true or false, got {value!r}")
    return value


@dataclass
class Config:
    """Complete configuration for langport."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    site: SiteConfig = field(default_factory=SiteConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    import_: ImportConfig = field(default_factory=ImportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_path: Optional[Path] = None) -> "Config":
        """
        Create Config from a dictionary (parsed TOML).

        Raises:
            ConfigError: If a value has the wrong type.
        """
        paths_data = data.get("paths", {})
        site_data = data.get("site", {})
        export_data = data.get("export", {})
        import_data = data.get("import", {})
        logging_data = data.get("logging", {})

        try:
            source_to_target = SourceToTarget.coerce(export_data.get("source_to_target", "off"))
        except ValueError as e:
            raise ConfigError(f"[export] {e}")

        limit_fields = export_data.get("limit_fields", [])
        if not isinstance(limit_fields, list):
            raise ConfigError("[export] limit_fields must be a list of field names")

        # Relative db paths are relative to the config file
        db = paths_data.get("db")
        if db and config_path is not None and not Path(db).is_absolute():
            db = str(config_path.parent / db)

        return cls(
            paths=PathsConfig(db=db),
            site=SiteConfig(root_url=str(site_data.get("root_url", "/"))),
            export=ExportConfig(
                omit_blank=_bool("export", export_data, "omit_blank", True),
                omit_translated=_bool("export", export_data, "omit_translated", False),
                source_to_target=source_to_target,
                compact=_bool("export", export_data, "compact", False),
                limit_fields=[str(name) for name in limit_fields],
            ),
            import_=ImportConfig(
                overwrite=_bool("import", import_data, "overwrite", False),
                confirm_source=_bool("import", import_data, "confirm_source", False),
                update_links=_bool("import", import_data, "update_links", True),
            ),
            logging=LoggingConfig(
                level=str(logging_data.get("level", "WARNING")),
                log_file=logging_data.get("log_file") or None,
            ),
            config_path=config_path,
        )

    @property
    def db_path(self) -> Path:
        return Path(self.paths.db) if self.paths.db else DEFAULT_DB_PATH

    def export_options(self, **overrides: Any) -> ExportOptions:
        """ExportOptions from the [export] section; non-None overrides win."""
        values = {
            "omit_blank": self.export.omit_blank,
            "omit_translated": self.export.omit_translated,
            "source_to_target": self.export.source_to_target,
            "compact": self.export.compact,
            "limit_fields": list(self.export.limit_fields),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["source_to_target"] = SourceToTarget.coerce(values["source_to_target"])
        return ExportOptions(**values)

    def import_options(self, **overrides: Any) -> ImportOptions:
        """ImportOptions from the [import] section; non-None overrides win."""
        values: Dict[str, Any] = {
            "overwrite": self.import_.overwrite,
            "confirm_source": self.import_.confirm_source,
            "update_links": self.import_.update_links,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ImportOptions(**values)


def find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find the configuration file.

    Search order:
    1. Explicit path if provided
    2. langport.toml in current directory

    Returns:
        Path to config file, or None if not found.

    Raises:
        ConfigError: If an explicit path does not exist.
    """
    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            return config_path
        raise ConfigError(f"Config file not found: {config_path}")

    cwd_config = Path.cwd() / DEFAULT_CONFIG_NAME
    if cwd_config.exists():
        return cwd_config

    return None


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a TOML file.

    If no config file is found, returns default configuration.

    Raises:
        ConfigError: If config file exists but cannot be parsed.
    """
    config_file = find_config_file(config_path)

    if config_file is None:
        logger.debug("No config file found, using defaults")
        return Config()

    logger.debug(f"Loading config from: {config_file}")

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_file}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}")

    config = Config.from_dict(data, config_path=config_file)
    logger.info(f"Loaded config from: {config_file}")
    return config
