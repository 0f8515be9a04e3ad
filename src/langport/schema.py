"""
SQLite schema for the langport content store.

The content store models a multi-language content tree:
- languages, with exactly one default language
- fields, each backed by its own `field_<name>` table laid out per encoding
- templates (item schemas) with an ordered field list
- items forming a tree through parent_id, with localized URL names

This module owns the DDL and database initialization; record access lives in
`store.py`.
"""

import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    """Return current UTC time as ISO format string."""
    return datetime.now(timezone.utc).isoformat()


# Default database location
DEFAULT_DB_PATH = Path("data/site.db")

# Schema version for migrations
SCHEMA_VERSION = 1

# Item id of the home (root) item created by init_db
HOME_ITEM_ID = 1
HOME_TEMPLATE = "home"

SCHEMA_SQL = """
-- Meta table for schema version tracking
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS languages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    is_default INTEGER NOT NULL DEFAULT 0
);

-- Installed fieldtype capabilities
CREATE TABLE IF NOT EXISTS fieldtypes (
    name TEXT PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS fields (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    type TEXT NOT NULL,
    settings_json TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS templates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    url_segments INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS template_fields (
    template_id INTEGER NOT NULL,
    field_id INTEGER NOT NULL,
    sort INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (template_id, field_id),
    FOREIGN KEY (template_id) REFERENCES templates(id) ON DELETE CASCADE,
    FOREIGN KEY (field_id) REFERENCES fields(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    parent_id INTEGER NOT NULL DEFAULT 0,
    template_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    sort INTEGER NOT NULL DEFAULT 0,
    status INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    FOREIGN KEY (template_id) REFERENCES templates(id)
);

CREATE INDEX IF NOT EXISTS idx_items_parent ON items(parent_id, name);

-- Localized URL names (default language uses items.name)
CREATE TABLE IF NOT EXISTS item_names (
    item_id INTEGER NOT NULL,
    language_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    PRIMARY KEY (item_id, language_id),
    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
    FOREIGN KEY (language_id) REFERENCES languages(id) ON DELETE CASCADE
);
"""

# Fieldtypes available in every store
CORE_FIELDTYPES = [
    "Text",
    "Textarea",
    "Integer",
    "Page",
    "TextLanguage",
    "TextareaLanguage",
    "PageTitleLanguage",
    "File",
    "Image",
]

# Fieldtypes that must be installed explicitly (optional capabilities)
OPTIONAL_FIELDTYPES = [
    "Table",
    "Textareas",
    "FieldsetPage",
    "Repeater",
    "RepeaterMatrix",
    "PageTable",
]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(name: str) -> str:
    """
    Ensure a table or column name is a plain SQL identifier.

    Field and column names end up interpolated in SQL, so only
    [A-Za-z0-9_] names are accepted.

    Raises:
        ConfigurationError: If the name is not a plain identifier.
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ConfigurationError(f"Invalid identifier: {name!r}")
    return name


def field_table_sql(
    field_name: str,
    field_type: str,
    language_ids: Iterable[int] = (),
    columns: Optional[List[Dict[str, str]]] = None,
) -> str:
    """
    Build the CREATE TABLE statement for a field's value table.

    Args:
        field_name: Field name (table becomes field_<name>).
        field_type: Fieldtype tag.
        language_ids: Non-default language ids (scalar language fields only).
        columns: Table column definitions (Table fieldtype only).

    Returns:
        SQL statement.
    """
    table = f"field_{check_identifier(field_name)}"

    if field_type in ("TextLanguage", "TextareaLanguage", "PageTitleLanguage"):
        cols = ["pages_id INTEGER PRIMARY KEY", "data TEXT"]
        cols.extend(f"data{int(lang_id)} TEXT" for lang_id in language_ids)
    elif field_type == "Table":
        cols = [
            "pages_id INTEGER NOT NULL",
            "data INTEGER NOT NULL",
            "sort INTEGER NOT NULL DEFAULT 0",
        ]
        cols.extend(f"{check_identifier(c['name'])} TEXT" for c in (columns or []))
        cols.append("PRIMARY KEY (pages_id, data)")
    elif field_type in ("File", "Image"):
        cols = [
            "pages_id INTEGER NOT NULL",
            "data TEXT NOT NULL",
            "sort INTEGER NOT NULL DEFAULT 0",
            "description TEXT NOT NULL DEFAULT ''",
            "PRIMARY KEY (pages_id, data)",
        ]
    elif field_type in ("PageTable", "Page"):
        cols = [
            "pages_id INTEGER NOT NULL",
            "data INTEGER NOT NULL",
            "sort INTEGER NOT NULL DEFAULT 0",
            "PRIMARY KEY (pages_id, data)",
        ]
    elif field_type == "FieldsetPage":
        cols = ["pages_id INTEGER PRIMARY KEY", "data INTEGER NOT NULL"]
    elif field_type in ("Repeater", "RepeaterMatrix"):
        cols = ["pages_id INTEGER PRIMARY KEY", "data TEXT", "count INTEGER NOT NULL DEFAULT 0"]
    else:
        cols = ["pages_id INTEGER PRIMARY KEY", "data TEXT"]

    return f"CREATE TABLE IF NOT EXISTS {table} (\n    " + ",\n    ".join(cols) + "\n)"


def init_db(
    db_path: Path,
    force: bool = False,
    default_language: str = "default",
    default_title: str = "Default",
) -> Path:
    """
    Initialize the content store database.

    Creates the schema, installs the core fieldtypes, the default language,
    the home template and the home item (id 1).

    Args:
        db_path: Path to the database file.
        force: If True, recreate the database even if it exists.
        default_language: Name of the default language.
        default_title: Title of the default language.

    Returns:
        Path to the database file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if db_path.exists():
        if force:
            logger.info(f"Removing existing database: {db_path}")
            db_path.unlink()
        else:
            logger.info(f"Database already exists: {db_path}")
            conn = sqlite3.connect(db_path)
            try:
                row = conn.execute(
                    "SELECT value FROM meta WHERE key = 'schema_version'"
                ).fetchone()
                if row and int(row[0]) != SCHEMA_VERSION:
                    logger.warning(
                        f"Schema version mismatch: DB has v{row[0]}, "
                        f"expected v{SCHEMA_VERSION}"
                    )
            except sqlite3.DatabaseError as e:
                raise ConfigurationError(f"Not a langport database: {db_path} ({e})")
            finally:
                conn.close()
            return db_path

    logger.info(f"Creating database: {db_path}")

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.executescript(SCHEMA_SQL)
        now = _utcnow()
        cursor.execute(
            "INSERT OR REPLACE INTO meta (key, value, updated_at) VALUES (?, ?, ?)",
            ("schema_version", str(SCHEMA_VERSION), now),
        )
        cursor.executemany(
            "INSERT OR IGNORE INTO fieldtypes (name) VALUES (?)",
            [(name,) for name in CORE_FIELDTYPES],
        )
        cursor.execute(
            "INSERT INTO languages (name, title, is_default) VALUES (?, ?, 1)",
            (default_language, default_title),
        )
        cursor.execute(
            "INSERT INTO templates (name, url_segments) VALUES (?, 0)", (HOME_TEMPLATE,)
        )
        cursor.execute(
            "INSERT INTO items (id, parent_id, template_id, name, sort, status, created_at) "
            "VALUES (?, 0, ?, 'home', 0, 1, ?)",
            (HOME_ITEM_ID, cursor.lastrowid, now),
        )
        conn.commit()
        logger.info(f"Database initialized with schema version {SCHEMA_VERSION}")
    finally:
        conn.close()

    return db_path
