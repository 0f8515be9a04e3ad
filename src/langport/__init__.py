"""
langport - translation port engine for multi-language content trees.

This package exports the translatable values of content items into a flat
bundle of (source, target) rows and imports translated bundles back:
- Ports for every storage encoding (language columns, delimited tables,
  delimited properties, attachment descriptions, container fields)
- Exporter and importer orchestration with overwrite, confirm-source and
  dry-run policies
- Link localization for markup values
"""

__version__ = "2.0.0"
__author__ = "langport contributors"

# Content store
from .schema import init_db
from .store import ContentStore, ItemCache

# Models
from .models import (
    ExportOptions,
    ImportOptions,
    Language,
    Row,
    RowType,
    SourceToTarget,
)

# Engine
from .bundle import BUNDLE_VERSION, load_bundle, save_bundle, validate_bundle
from .exporter import FieldExporter
from .hooks import HookContext, HookManager, HookType
from .importer import FieldImporter, ImportResult, RowOutcome
from .links import LinkLocalizer
from .pathfinder import PathFinder

# Errors
from .errors import (
    ConfigurationError,
    LangPortError,
    LanguageNotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    # Content store
    "init_db",
    "ContentStore",
    "ItemCache",
    # Models
    "ExportOptions",
    "ImportOptions",
    "Language",
    "Row",
    "RowType",
    "SourceToTarget",
    # Engine
    "BUNDLE_VERSION",
    "load_bundle",
    "save_bundle",
    "validate_bundle",
    "FieldExporter",
    "FieldImporter",
    "ImportResult",
    "RowOutcome",
    "HookContext",
    "HookManager",
    "HookType",
    "LinkLocalizer",
    "PathFinder",
    # Errors
    "LangPortError",
    "ConfigurationError",
    "ValidationError",
    "LanguageNotFoundError",
    "StorageError",
]
