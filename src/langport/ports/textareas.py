"""
Port for multi-property delimited blobs (Textareas fields).

Storage: field_<name> holds one `data` blob per item, entries joined by a raw
carriage return. Default-language entries are "name:value", other languages
carry a "___<languageId>" suffix on the name:

    intro:<p>Hello</p>
    intro___5:<p>Bonjour</p>
    summary:Short text
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from .. import row_path
from ..models import CONTENT_TYPE_HTML, Field, Language, Row, RowType
from .base import Port, normalize_newlines

ENTRY_SEPARATOR = "\r"
LANGUAGE_SUFFIX = "___"

INPUTFIELD_ROW_TYPES: Dict[str, RowType] = {
    "InputfieldText": RowType.TEXT,
    "InputfieldTextarea": RowType.TEXTAREA,
    "InputfieldCKEditor": RowType.MARKUP,
    "InputfieldURL": RowType.TEXT,
    "InputfieldEmail": RowType.TEXT,
}


def split_entries(encoded: Optional[str]) -> List[Tuple[Optional[str], str]]:
    """
    Split a blob into (key, value) entries in stored order.

    An entry without a ":" has key None and keeps its raw text as value.
    """
    entries: List[Tuple[Optional[str], str]] = []
    if not encoded:
        return entries
    for part in encoded.split(ENTRY_SEPARATOR):
        key, sep, value = part.partition(":")
        if sep and key:
            entries.append((key, value))
        else:
            entries.append((None, part))
    return entries


def property_key(name: str, language: Language) -> str:
    return name if language.is_default else f"{name}{LANGUAGE_SUFFIX}{language.id}"


class DelimitedPropertiesPort(Port):
    """Textareas fields with per-language named properties."""

    required_fieldtype = "Textareas"

    def portable(self, field: Field) -> bool:
        return field.type == "Textareas" and bool(field.get("multilang"))

    def row_type(self, field: Field) -> Optional[RowType]:
        """Row type from the field's input class, None when it is not translatable text."""
        inputfield_class = field.get("inputfield_class", "InputfieldText")
        if inputfield_class not in INPUTFIELD_ROW_TYPES:
            return None
        if field.content_type >= CONTENT_TYPE_HTML:
            return RowType.MARKUP
        return INPUTFIELD_ROW_TYPES[inputfield_class]

    def read_blob(self, item_id: int, field: Field) -> Optional[str]:
        records = self.store.query_raw_column(field.table, item_id, ["data"])
        if not records:
            return None
        return records[0]["data"] or ""

    def export(self, item_id: int, field: Field) -> None:
        row_type = self.row_type(field)
        if row_type is None:
            return

        source_id = self.context.source.id
        target_id = self.context.target.id
        default_id = self.store.default_language().id

        values: "OrderedDict[str, Dict[str, str]]" = OrderedDict()
        for key, value in split_entries(self.read_blob(item_id, field)):
            if key is None:
                continue
            name, sep, suffix = key.partition(LANGUAGE_SUFFIX)
            if sep and suffix.isdigit():
                language_id = int(suffix)
            else:
                name, language_id = key, default_id
            lang_values = values.setdefault(name, {})
            if language_id == source_id:
                lang_values["source"] = value
            elif language_id == target_id:
                lang_values["target"] = value

        for name, lang_values in values.items():
            source = lang_values.get("source", "")
            target = lang_values.get("target", "")
            if not source and not target:
                continue
            if self.context.omit_blank and not source:
                continue
            row = self.row_template(item_id, field)
            row.field_path += f".{name}"
            row.type = row_type
            row.source = source
            row.target = target
            self.emit(item_id, field, row)

    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        name = row_path.field_property(row.field_path)
        if not name:
            self.warn(f"No textareas property found in '{row.field_path}'", row)
            return False

        blob = self.read_blob(item_id, field)
        if blob is None:
            self.warn(f"Textareas row not found in DB for item {item_id}", row)
            return False

        entries = split_entries(blob)
        stored = {key: value for key, value in entries if key is not None}
        source_key = property_key(name, self.context.source)
        target_key = property_key(name, self.context.target)
        current = stored.get(target_key, "")

        if current and current == row.target:
            self.warn("Skipped because correct target value already present in DB", row)
            return False

        if current and not self.context.overwrite:
            self.warn(
                f"Skipped because existing value present for '{field.name}.{target_key}' "
                "and overwrite disallowed",
                row,
            )
            return False

        if stored.get(source_key, "") != row.source:
            if self.context.confirm_source:
                self.warn("Skipped because source value differs from that in row", row)
                return False
            self.note("Source value in DB differs from source value in import (textareas)", row)

        self.localize_links(row)
        target = normalize_newlines(row.target)

        parts: List[str] = []
        replaced = False
        for key, value in entries:
            if key is None:
                parts.append(value)
            elif key == target_key:
                if not replaced:
                    parts.append(f"{key}:{target}")
                    replaced = True
            else:
                parts.append(f"{key}:{value}")
        if not replaced:
            parts.append(f"{target_key}:{target}")

        affected = self.store.write_raw_column(
            field.table,
            item_id,
            {"data": ENTRY_SEPARATOR.join(parts)},
            dry_run=self.context.dry_run,
        )

        if affected > 0:
            self.note("Updated", row)
            return True
        self.warn("Skipped", row)
        return False
