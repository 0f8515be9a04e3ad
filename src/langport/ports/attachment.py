"""
Port for file and image description blobs.

Storage: field_<name> holds one row per attachment (`data` = filename) whose
`description` column is either a plain string (default language only) or a
JSON map of language id to text, where key "0" is the default language:

    {"0":"A red door","5":"Une porte rouge"}
"""

import json
from typing import Any, Dict, List

from .. import row_path
from ..models import FILE_TYPES, Field, Row
from .base import Port


def decode_descriptions(value: Any) -> Dict[str, str]:
    """
    Decode a stored description into a map keyed by stringified language id.

    Plain strings and undecodable JSON become {"0": value}; JSON lists are
    keyed by position.
    """
    text = "" if value is None else str(value)
    if text.startswith("[") or text.startswith("{"):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            return {"0": text}
        if isinstance(decoded, list):
            return {str(i): "" if v is None else str(v) for i, v in enumerate(decoded)}
        if isinstance(decoded, dict):
            return {str(k): "" if v is None else str(v) for k, v in decoded.items()}
    return {"0": text}


def encode_descriptions(descriptions: Dict[str, str]) -> str:
    """Encode as a compact JSON object with unescaped unicode and slashes."""
    return json.dumps(descriptions, ensure_ascii=False, separators=(",", ":"))


class AttachmentDescriptionPort(Port):
    """Per-attachment multi-language descriptions of File and Image fields."""

    def portable(self, field: Field) -> bool:
        if field.type not in FILE_TYPES:
            return False
        if int(field.get("description_rows", 1) or 0) < 1:
            return False
        if field.get("no_lang"):
            return False
        # fields with custom attachment fields are not supported
        if self.store.template_exists(f"field-{field.name}"):
            return False
        return True

    def _by_language_id(self, descriptions: Dict[str, str]) -> Dict[str, str]:
        """Replace the "0" key with the default language id."""
        descriptions = dict(descriptions)
        if "0" in descriptions:
            default_id = str(self.store.default_language().id)
            descriptions[default_id] = descriptions.pop("0")
        return descriptions

    def export(self, item_id: int, field: Field) -> None:
        source_id = str(self.context.source.id)
        target_id = str(self.context.target.id)

        for record in self.store.query_raw_column(
            field.table, item_id, ["data", "description"], order_by="sort"
        ):
            descriptions = self._by_language_id(decode_descriptions(record["description"]))
            row = self.row_template(item_id, field)
            row.field_path = row_path.with_index(row.field_path, record["data"])
            row.source = descriptions.get(source_id, "")
            row.target = descriptions.get(target_id, "")
            self.emit(item_id, field, row)

    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        source_id = str(self.context.source.id)
        target_id = str(self.context.target.id)
        default_id = str(self.store.default_language().id)
        notes: List[str] = []

        basename = row_path.field_index(row.field_path)
        if not basename:
            self.warn("Cannot identify file basename", row)
            return False

        records = self.store.query_raw_column(
            field.table,
            item_id,
            ["description"],
            where="data = :basename",
            params={"basename": basename},
        )
        if not records:
            self.warn(f"Row for file '{basename}' not found in DB", row)
            return False

        stored = decode_descriptions(records[0]["description"])
        original_keys = list(stored)
        descriptions = self._by_language_id(stored)

        if descriptions.get(target_id):
            if not self.context.overwrite:
                self.warn("Skipping because target value already present (overwrite=false)", row)
                return False
            notes.append("Overwriting existing target value")

        descriptions.setdefault(source_id, "")
        if descriptions[source_id] != row.source:
            if self.context.confirm_source:
                self.warn("Skipping because source value in DB differs from source value in import", row)
                return False
            notes.append("Source value in DB differs from source value in import (file)")

        self.localize_links(row)
        descriptions[target_id] = row.target

        if default_id in descriptions:
            # default language goes back to key "0", first
            reordered = {"0": descriptions.pop(default_id)}
            reordered.update(descriptions)
            descriptions = reordered

        # original key order first, new keys appended
        ordered = {key: descriptions.pop(key) for key in original_keys if key in descriptions}
        ordered.update(descriptions)

        affected = self.store.write_raw_column(
            field.table,
            item_id,
            {"description": encode_descriptions(ordered)},
            where="data = :basename",
            params={"basename": basename},
            dry_run=self.context.dry_run,
        )

        if affected > 0:
            notes.append("Updated")
            self.note(". ".join(notes), row)
            return True
        notes.append("Skipped")
        self.warn(". ".join(notes), row)
        return False
