"""
Port for delimited multi-column tables.

Storage: field_<name> holds one row per table row (`data` = row id, `sort`),
plus one column per table column. Each translatable column holds entries
"<languageId>:<value>" joined by a raw carriage return:

    1:Hello\\r5:Bonjour\\r7:Hallo

An entry without a numeric language prefix is the default-language value.
Untouched entries are written back byte-identical and in their original order.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from .. import row_path
from ..models import TRANSLATABLE_TABLE_COLUMN_TYPES, Field, Row, RowType, optional_int
from .base import Port, normalize_newlines

ENTRY_SEPARATOR = "\r"


class LanguageValues:
    """
    Parsed language entries of one table cell.

    Keeps the raw text of every entry so that entries the import does not
    change are re-serialized exactly as they were read.
    """

    def __init__(self) -> None:
        self.values: "OrderedDict[int, str]" = OrderedDict()
        self._raw: Dict[int, Tuple[str, str]] = {}

    @classmethod
    def parse(cls, encoded: Optional[str], default_language_id: int) -> "LanguageValues":
        parsed = cls()
        if not encoded:
            return parsed
        for entry in encoded.split(ENTRY_SEPARATOR):
            prefix, sep, value = entry.partition(":")
            if sep and prefix.isdigit():
                language_id = int(prefix)
            else:
                # not a language value, it belongs to the default language
                language_id = default_language_id
                value = entry
                if language_id in parsed.values:
                    continue
            parsed.values[language_id] = value
            parsed._raw[language_id] = (value, entry)
        return parsed

    def get(self, language_id: int) -> str:
        return self.values.get(language_id) or ""

    def __contains__(self, language_id: int) -> bool:
        return language_id in self.values

    def __setitem__(self, language_id: int, value: str) -> None:
        self.values[language_id] = value

    def serialize(self) -> str:
        entries: List[str] = []
        for language_id, value in self.values.items():
            original = self._raw.get(language_id)
            if original is not None and original[0] == value:
                entries.append(original[1])
            elif value:
                entries.append(f"{language_id}:{value}")
        return ENTRY_SEPARATOR.join(entries)


class DelimitedTablePort(Port):
    """Table fields whose text columns carry per-language entries."""

    required_fieldtype = "Table"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._column_types: Dict[str, Dict[str, RowType]] = {}

    def portable(self, field: Field) -> bool:
        return field.type == "Table"

    def column_types(self, field: Field) -> Dict[str, RowType]:
        """Translatable columns of a table field mapped to their row type."""
        if field.name not in self._column_types:
            types: Dict[str, RowType] = {}
            for col in field.get("columns") or []:
                row_type = TRANSLATABLE_TABLE_COLUMN_TYPES.get(col.get("type", ""))
                if row_type is not None:
                    types[col["name"]] = row_type
            self._column_types[field.name] = types
        return self._column_types[field.name]

    def export(self, item_id: int, field: Field) -> None:
        col_types = self.column_types(field)
        if not col_types:
            return  # no multi-language columns in this table

        source_id = self.context.source.id
        target_id = self.context.target.id
        default_id = self.store.default_language().id
        col_names = list(col_types)

        for record in self.store.query_raw_column(
            field.table, item_id, ["data"] + col_names, order_by="sort"
        ):
            row_id = int(record["data"])
            for col_name in col_names:
                encoded = record[col_name]
                if not encoded:
                    continue
                values = LanguageValues.parse(encoded, default_id)

                row = self.row_template(item_id, field)
                row.type = col_types[col_name]
                row.source = values.get(source_id)
                row.target = values.get(target_id)
                row.field_path += f"[{row_id}].{col_name}"

                if self.context.omit_blank and not row.source:
                    continue
                self.emit(item_id, field, row)

    def language_values(self, item_id: int, row_id: int, field: Field, col: str) -> LanguageValues:
        records = self.store.query_raw_column(
            field.table, item_id, [col], where="data = :row_id", params={"row_id": row_id}
        )
        encoded = records[0][col] if records else None
        return LanguageValues.parse(encoded, self.store.default_language().id)

    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        source_id = self.context.source.id
        target_id = self.context.target.id
        row_id = optional_int(row_path.field_index(row.field_path))
        col = row_path.field_column(row.field_path)
        notes: List[str] = []

        if not col or not row_id:
            self.warn("Cannot identify table row and column", row)
            return False
        if col not in self.column_types(field):
            self.warn(f"Column '{col}' is not a translatable column of {field.name}", row)
            return False

        lang_values = self.language_values(item_id, row_id, field, col)

        if not lang_values.get(source_id):
            if self.context.confirm_source:
                self.warn("Skipped because source value is empty", row)
                return False
            notes.append("Source value in DB is empty")
            if source_id not in lang_values:
                lang_values[source_id] = ""

        if lang_values.get(source_id) != row.source:
            # target translation is for something different than current value
            if self.context.confirm_source:
                self.warn("Skipped because source value in DB is different from source in import data", row)
                return False
            notes.append("Source value in DB differs from source value in import (table)")

        self.localize_links(row)

        current = lang_values.get(target_id)
        if not current:
            pass  # no prior translation
        elif current == row.target:
            self.warn("Skipped because target value is already up-to-date", row)
            return False
        elif not self.context.overwrite:
            self.warn("Skipped because target value is already in DB (overwrite=false)", row)
            return False
        else:
            notes.append("Overwriting existing target value")

        lang_values[target_id] = normalize_newlines(row.target)

        affected = self.store.write_raw_column(
            field.table,
            item_id,
            {col: lang_values.serialize()},
            where="data = :row_id",
            params={"row_id": row_id},
            dry_run=self.context.dry_run,
        )

        if affected > 0:
            notes.append("Updated")
            self.note(". ".join(notes), row)
            return True
        if not notes:
            notes.append("DB reported update not necessary")
        notes.append("Skipped")
        self.warn(". ".join(notes), row)
        return False
