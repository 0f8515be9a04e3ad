"""
SQLite-backed content store.

Implements the collaborators the translation engine consumes:
- item store: items, item schemas (templates), raw field-table reads/writes
- language registry: language lookup by token, default-language checks
- field registry: field definitions and installed fieldtype capabilities

Usage:
    store = ContentStore(db_path)
    fr = store.add_language("fr", "French")
    title = store.create_field("title", "PageTitleLanguage")
    basic = store.create_template("basic", ["title"])
    item_id = store.add_item("about", basic)
    store.insert(title.table, {"pages_id": item_id, "data": "About"})
"""

import json
import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .errors import ConfigurationError, StorageError
from .models import Field, Item, Language, Template
from .schema import (
    HOME_ITEM_ID,
    check_identifier,
    field_table_sql,
)

logger = logging.getLogger(__name__)

_HREF_RE = re.compile(r'(<a\s[^>]*?href=")(/[^"]*)(")')

# Item that holds repeater storage branches (for-field-N/for-page-N)
REPEATERS_ITEM_NAME = "repeaters"
REPEATER_HOLDER_TEMPLATE = "repeater_holder"


def _utcnow() -> str:
    """Return current UTC time as ISO format string."""
    return datetime.now(timezone.utc).isoformat()


class ContentStore:
    """
    Access layer over a langport content database.

    One store holds one connection; every write commits immediately so that
    each row import is autonomous.
    """

    def __init__(self, db_path: Union[str, Path], root_url: str = "/"):
        """
        Open an existing content database.

        Args:
            db_path: Path to a database created by schema.init_db.
            root_url: URL path the site is installed under ("/" or "/sub/").

        Raises:
            StorageError: If the database does not exist.
        """
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            raise StorageError(f"Database not found: {self.db_path}")
        if not root_url.startswith("/"):
            root_url = "/" + root_url
        if not root_url.endswith("/"):
            root_url += "/"
        self.root_url = root_url
        self._conn: Optional[sqlite3.Connection] = None
        self._fields: Dict[str, Field] = {}

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, timeout=30)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Languages
    # ------------------------------------------------------------------

    @staticmethod
    def _language_from_row(row: sqlite3.Row) -> Language:
        return Language(
            id=row["id"],
            name=row["name"],
            title=row["title"],
            is_default=bool(row["is_default"]),
        )

    def get_languages(self) -> List[Language]:
        rows = self.conn.execute(
            "SELECT id, name, title, is_default FROM languages ORDER BY is_default DESC, id"
        ).fetchall()
        return [self._language_from_row(r) for r in rows]

    def get_language(self, language_id: int) -> Optional[Language]:
        row = self.conn.execute(
            "SELECT id, name, title, is_default FROM languages WHERE id = ?",
            (int(language_id),),
        ).fetchone()
        return self._language_from_row(row) if row else None

    def default_language(self) -> Language:
        row = self.conn.execute(
            "SELECT id, name, title, is_default FROM languages WHERE is_default = 1"
        ).fetchone()
        if row is None:
            raise StorageError("Content store has no default language")
        return self._language_from_row(row)

    def resolve_language(self, token: Any) -> Optional[Language]:
        """
        Find a language from a bundle token.

        Accepts a bare name ("fr") or a bundle label ("fr (French)"); only the
        part before the first space is used.
        """
        if token is None:
            return None
        value = str(token).strip()
        if " " in value:
            value = value.split(" ", 1)[0]
        if not value:
            return None
        row = self.conn.execute(
            "SELECT id, name, title, is_default FROM languages WHERE name = ?", (value,)
        ).fetchone()
        return self._language_from_row(row) if row else None

    def is_default(self, language: Language) -> bool:
        return language.id == self.default_language().id

    def add_language(
        self,
        name: str,
        title: str = "",
        language_id: Optional[int] = None,
    ) -> Language:
        """
        Register a non-default language.

        Adds the language's data<id> column to every scalar language field table.
        """
        cursor = self.conn.cursor()
        if language_id is None:
            cursor.execute(
                "INSERT INTO languages (name, title, is_default) VALUES (?, ?, 0)",
                (name, title),
            )
        else:
            cursor.execute(
                "INSERT INTO languages (id, name, title, is_default) VALUES (?, ?, ?, 0)",
                (int(language_id), name, title),
            )
        new_id = cursor.lastrowid
        for field in self.list_fields():
            if field.type in ("TextLanguage", "TextareaLanguage", "PageTitleLanguage"):
                cursor.execute(f"ALTER TABLE {field.table} ADD COLUMN data{int(new_id)} TEXT")
        self.conn.commit()
        logger.debug(f"Added language {name} (id={new_id})")
        return Language(id=new_id, name=name, title=title, is_default=False)

    # ------------------------------------------------------------------
    # Fieldtypes and fields
    # ------------------------------------------------------------------

    def install_fieldtype(self, name: str) -> None:
        self.conn.execute("INSERT OR IGNORE INTO fieldtypes (name) VALUES (?)", (name,))
        self.conn.commit()

    def fieldtype_installed(self, name: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM fieldtypes WHERE name = ?", (name,)).fetchone()
        return row is not None

    @staticmethod
    def _field_from_row(row: sqlite3.Row) -> Field:
        return Field(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            settings=json.loads(row["settings_json"] or "{}"),
        )

    def create_field(self, name: str, field_type: str, **settings: Any) -> Field:
        """
        Create a field and its value table.

        Raises:
            ConfigurationError: If the fieldtype is not installed or the name is invalid.
        """
        check_identifier(name)
        if not self.fieldtype_installed(field_type):
            raise ConfigurationError(f"Fieldtype not installed: {field_type}")

        language_ids = [lang.id for lang in self.get_languages() if not lang.is_default]
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO fields (name, type, settings_json) VALUES (?, ?, ?)",
            (name, field_type, json.dumps(settings)),
        )
        field = Field(id=cursor.lastrowid, name=name, type=field_type, settings=dict(settings))
        cursor.execute(
            field_table_sql(name, field_type, language_ids, settings.get("columns"))
        )
        self.conn.commit()
        self._fields[name] = field
        return field

    def get_field(self, name: str) -> Optional[Field]:
        if name in self._fields:
            return self._fields[name]
        row = self.conn.execute(
            "SELECT id, name, type, settings_json FROM fields WHERE name = ?", (name,)
        ).fetchone()
        if row is None:
            return None
        field = self._field_from_row(row)
        self._fields[name] = field
        return field

    def list_fields(self) -> List[Field]:
        rows = self.conn.execute(
            "SELECT id, name, type, settings_json FROM fields ORDER BY id"
        ).fetchall()
        return [self._field_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Templates (item schemas)
    # ------------------------------------------------------------------

    def create_template(
        self,
        name: str,
        field_names: Sequence[str] = (),
        url_segments: bool = False,
    ) -> Template:
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO templates (name, url_segments) VALUES (?, ?)",
            (name, int(url_segments)),
        )
        template_id = cursor.lastrowid
        fields = []
        for sort, field_name in enumerate(field_names):
            field = self.get_field(field_name)
            if field is None:
                raise ConfigurationError(f"Unknown field for template {name}: {field_name}")
            cursor.execute(
                "INSERT INTO template_fields (template_id, field_id, sort) VALUES (?, ?, ?)",
                (template_id, field.id, sort),
            )
            fields.append(field)
        self.conn.commit()
        return Template(id=template_id, name=name, fields=fields, url_segments=url_segments)

    def get_template(self, template_id: int) -> Optional[Template]:
        row = self.conn.execute(
            "SELECT id, name, url_segments FROM templates WHERE id = ?", (int(template_id),)
        ).fetchone()
        if row is None:
            return None
        field_rows = self.conn.execute(
            "SELECT f.id, f.name, f.type, f.settings_json FROM template_fields tf "
            "JOIN fields f ON f.id = tf.field_id "
            "WHERE tf.template_id = ? ORDER BY tf.sort, f.id",
            (row["id"],),
        ).fetchall()
        return Template(
            id=row["id"],
            name=row["name"],
            fields=[self._field_from_row(r) for r in field_rows],
            url_segments=bool(row["url_segments"]),
        )

    def template_exists(self, name: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM templates WHERE name = ?", (name,)).fetchone()
        return row is not None

    def _template_id_by_name(self, name: str) -> Optional[int]:
        row = self.conn.execute("SELECT id FROM templates WHERE name = ?", (name,)).fetchone()
        return row["id"] if row else None

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(
        self,
        name: str,
        template: Union[Template, int],
        parent_id: int = HOME_ITEM_ID,
        status: int = 1,
        names: Optional[Mapping[int, str]] = None,
        sort: Optional[int] = None,
    ) -> int:
        """
        Add an item to the tree.

        Args:
            name: Default-language URL name.
            template: Template or template id.
            parent_id: Parent item id.
            status: 1 published, 0 unpublished.
            names: Localized URL names keyed by language id.
            sort: Position among siblings (appended when None).

        Returns:
            The new item id.
        """
        template_id = template.id if isinstance(template, Template) else int(template)
        cursor = self.conn.cursor()
        if sort is None:
            row = cursor.execute(
                "SELECT COALESCE(MAX(sort) + 1, 0) FROM items WHERE parent_id = ?",
                (parent_id,),
            ).fetchone()
            sort = row[0]
        cursor.execute(
            "INSERT INTO items (parent_id, template_id, name, sort, status, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (parent_id, template_id, name, sort, status, _utcnow()),
        )
        item_id = cursor.lastrowid
        for language_id, localized in (names or {}).items():
            cursor.execute(
                "INSERT INTO item_names (item_id, language_id, name) VALUES (?, ?, ?)",
                (item_id, int(language_id), localized),
            )
        self.conn.commit()
        return item_id

    def get_item(self, item_id: int) -> Optional[Item]:
        row = self.conn.execute(
            "SELECT id, parent_id, template_id, name, sort, status FROM items WHERE id = ?",
            (int(item_id),),
        ).fetchone()
        if row is None:
            return None
        return Item(
            id=row["id"],
            parent_id=row["parent_id"],
            template_id=row["template_id"],
            name=row["name"],
            sort=row["sort"],
            status=row["status"],
        )

    def get_item_schema(self, item_id: int) -> Optional[Template]:
        row = self.conn.execute(
            "SELECT template_id FROM items WHERE id = ?", (int(item_id),)
        ).fetchone()
        if row is None:
            return None
        return self.get_template(row["template_id"])

    def item_has_template(self, item_id: int, template_ids: Iterable[int]) -> bool:
        ids = [int(t) for t in template_ids]
        if not ids:
            return False
        placeholders = ", ".join("?" for _ in ids)
        row = self.conn.execute(
            f"SELECT COUNT(*) FROM items WHERE id = ? AND template_id IN ({placeholders})",
            [int(item_id)] + ids,
        ).fetchone()
        return row[0] > 0

    def item_name(self, item: Item, language: Language) -> str:
        """URL name of an item in a language, falling back to the default name."""
        if language.is_default:
            return item.name
        row = self.conn.execute(
            "SELECT name FROM item_names WHERE item_id = ? AND language_id = ?",
            (item.id, language.id),
        ).fetchone()
        return row["name"] if row and row["name"] else item.name

    def find_child(self, parent_id: int, name: str, language: Language) -> Optional[Item]:
        """Find a child by its URL name in the given language (default name as fallback)."""
        row = None
        if not language.is_default:
            row = self.conn.execute(
                "SELECT i.id FROM items i JOIN item_names n ON n.item_id = i.id "
                "WHERE i.parent_id = ? AND n.language_id = ? AND n.name = ? "
                "ORDER BY i.sort LIMIT 1",
                (parent_id, language.id, name),
            ).fetchone()
        if row is None:
            row = self.conn.execute(
                "SELECT id FROM items WHERE parent_id = ? AND name = ? ORDER BY sort LIMIT 1",
                (parent_id, name),
            ).fetchone()
        return self.get_item(row["id"]) if row else None

    def add_repeater_item(
        self,
        owner_id: int,
        field: Field,
        template: Union[Template, int],
        name: Optional[str] = None,
    ) -> int:
        """
        Add a repeater child for an owner item and repeater field.

        Children live under repeaters/for-field-<fieldId>/for-page-<ownerId>.
        """
        holder_template = self._template_id_by_name(REPEATER_HOLDER_TEMPLATE)
        if holder_template is None:
            holder_template = self.create_template(REPEATER_HOLDER_TEMPLATE).id

        repeaters = self.find_child(HOME_ITEM_ID, REPEATERS_ITEM_NAME, self.default_language())
        repeaters_id = repeaters.id if repeaters else self.add_item(
            REPEATERS_ITEM_NAME, holder_template, parent_id=HOME_ITEM_ID, status=0
        )
        for_field = self.find_child(repeaters_id, f"for-field-{field.id}", self.default_language())
        for_field_id = for_field.id if for_field else self.add_item(
            f"for-field-{field.id}", holder_template, parent_id=repeaters_id, status=0
        )
        for_page = self.find_child(for_field_id, f"for-page-{owner_id}", self.default_language())
        for_page_id = for_page.id if for_page else self.add_item(
            f"for-page-{owner_id}", holder_template, parent_id=for_field_id, status=0
        )
        child_id = self.add_item(name or "item", template, parent_id=for_page_id)
        if name is None:
            self.conn.execute("UPDATE items SET name = ? WHERE id = ?", (str(child_id), child_id))
            self.conn.commit()
        return child_id

    # ------------------------------------------------------------------
    # Raw field-table access
    # ------------------------------------------------------------------

    def insert(self, table: str, values: Mapping[str, Any]) -> None:
        """Insert one row into a field table."""
        check_identifier(table)
        cols = [check_identifier(c) for c in values]
        placeholders = ", ".join("?" for _ in cols)
        self.conn.execute(
            f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})",
            list(values.values()),
        )
        self.conn.commit()

    def query_raw_column(
        self,
        table: str,
        item_id: int,
        columns: Sequence[str],
        where: str = "",
        params: Optional[Mapping[str, Any]] = None,
        order_by: str = "",
    ) -> List[sqlite3.Row]:
        """
        Read columns of a field table for one item.

        Args:
            table: Field table name.
            item_id: Owning item id (pages_id).
            columns: Columns to select (may use "col AS alias").
            where: Additional SQL predicate using named parameters.
            params: Named parameters for the predicate.
            order_by: Optional ORDER BY column.

        Returns:
            Matching rows (sqlite3.Row, addressable by name).
        """
        check_identifier(table)
        sql = f"SELECT {', '.join(columns)} FROM {table} WHERE pages_id = :pages_id"
        if where:
            sql += f" AND ({where})"
        if order_by:
            sql += f" ORDER BY {check_identifier(order_by)}"
        bind: Dict[str, Any] = {"pages_id": int(item_id)}
        bind.update(params or {})
        try:
            return self.conn.execute(sql, bind).fetchall()
        except sqlite3.OperationalError as e:
            raise StorageError(f"Cannot read {table}: {e}")

    def write_raw_column(
        self,
        table: str,
        item_id: int,
        assignments: Mapping[str, Any],
        where: str = "",
        params: Optional[Mapping[str, Any]] = None,
        dry_run: bool = False,
    ) -> int:
        """
        Conditionally write columns of a field table for one item.

        Only rows whose value would actually change are touched, so the
        affected count is the number of changed rows. In dry-run mode the
        identical predicate runs as a SELECT COUNT(*) and nothing is written.

        Args:
            table: Field table name.
            item_id: Owning item id (pages_id).
            assignments: Column -> new value.
            where: Additional SQL guard predicate using named parameters.
            params: Named parameters for the guard.
            dry_run: Count matches instead of writing.

        Returns:
            Number of rows changed (or that would change).
        """
        check_identifier(table)
        cols = [check_identifier(c) for c in assignments]
        bind: Dict[str, Any] = {"pages_id": int(item_id)}
        bind.update(params or {})
        for col in cols:
            bind[f"set_{col}"] = assignments[col]

        predicate = "pages_id = :pages_id"
        if where:
            predicate += f" AND ({where})"
        predicate += " AND (" + " OR ".join(f"{c} IS NOT :set_{c}" for c in cols) + ")"

        try:
            if dry_run:
                row = self.conn.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE {predicate}", bind
                ).fetchone()
                return int(row[0])
            set_sql = ", ".join(f"{c} = :set_{c}" for c in cols)
            cursor = self.conn.execute(f"UPDATE {table} SET {set_sql} WHERE {predicate}", bind)
            self.conn.commit()
            return cursor.rowcount
        except sqlite3.OperationalError as e:
            raise StorageError(f"Cannot write {table}: {e}")

    def child_ids_by_parent_chain(
        self, owner_id: int, field: Field
    ) -> List[sqlite3.Row]:
        """Repeater children (id, template_id) for an owner item, in sort order."""
        sql = (
            "SELECT items.id, items.template_id FROM items "
            "JOIN items AS parent ON parent.name = :for_page AND items.parent_id = parent.id "
            "JOIN items AS grandparent ON grandparent.name = :for_field "
            "AND grandparent.id = parent.parent_id "
            "ORDER BY items.sort, items.id"
        )
        return self.conn.execute(
            sql, {"for_page": f"for-page-{int(owner_id)}", "for_field": f"for-field-{int(field.id)}"}
        ).fetchall()

    # ------------------------------------------------------------------
    # Markup
    # ------------------------------------------------------------------

    def wakeup_markup(self, item: Item, value: str) -> str:
        """
        Expand stored markup for presentation.

        Stored markup keeps hrefs relative to the site root; when the site is
        installed under a subdirectory the root URL is prefixed back.
        """
        if self.root_url == "/" or not value or 'href="/' not in value:
            return value

        def _expand(match: "re.Match[str]") -> str:
            href = match.group(2)
            if href.startswith(self.root_url):
                return match.group(0)
            return match.group(1) + self.root_url + href[1:] + match.group(3)

        logger.debug(f"Expanding markup links for item {item.id}")
        return _HREF_RE.sub(_expand, value)


class ItemCache:
    """
    Single-slot cache of the last loaded item.

    Owned by one export run. Loading a different item clears the slot first.
    """

    def __init__(self, store: ContentStore):
        self.store = store
        self._item: Optional[Item] = None

    def get(self, item_id: int) -> Optional[Item]:
        if self._item is not None:
            if self._item.id == int(item_id):
                return self._item
            self.clear()
        item = self.store.get_item(item_id)
        if item is not None:
            self._item = item
        return item

    def clear(self) -> None:
        self._item = None

    @property
    def current(self) -> Optional[Item]:
        return self._item
