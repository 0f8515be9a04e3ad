"""
Port for plain multi-language text columns.

Storage: one row per item in field_<name>, one column per language. The default
language uses the un-suffixed `data` column, other languages `data<languageId>`.
"""

from typing import Dict, List

from ..models import CONTENT_TYPE_HTML, SCALAR_LANGUAGE_TYPES, TEXTAREA_TYPES, Field, Row, RowType
from .base import Port


class ScalarPort(Port):
    """Text, textarea and title fields with per-language columns."""

    def portable(self, field: Field) -> bool:
        return field.type in SCALAR_LANGUAGE_TYPES

    def row_type(self, field: Field) -> RowType:
        if field.type in TEXTAREA_TYPES:
            if field.content_type >= CONTENT_TYPE_HTML:
                return RowType.MARKUP
            return RowType.TEXTAREA
        return RowType.TEXT

    def export(self, item_id: int, field: Field) -> None:
        source_col = self.context.source.data_column
        target_col = self.context.target.data_column

        rows = self.store.query_raw_column(
            field.table, item_id, [f"{source_col} AS source", f"{target_col} AS target"]
        )
        if not rows:
            return

        source = rows[0]["source"] or ""
        target = rows[0]["target"] or ""
        if self.context.omit_blank and not source:
            return

        row = self.row_template(item_id, field)
        row.type = self.row_type(field)
        row.source = source
        row.target = target
        self.emit(item_id, field, row)

    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        source_col = self.context.source.data_column
        target_col = self.context.target.data_column

        guards: List[str] = []
        params: Dict[str, str] = {}

        if not self.context.overwrite:
            guards.append(f"({target_col} IS NULL OR {target_col} = '')")

        if self.context.confirm_source:
            guards.append(f"IFNULL({source_col}, '') = :source_value")
            params["source_value"] = row.source
        elif self.diagnostics.enabled:
            stored = self.store.query_raw_column(field.table, item_id, [f"{source_col} AS source"])
            if stored and (stored[0]["source"] or "") != row.source:
                self.note("Source value in DB differs from source value in import", row)

        self.localize_links(row)

        affected = self.store.write_raw_column(
            field.table,
            item_id,
            {target_col: row.target},
            where=" AND ".join(guards),
            params=params,
            dry_run=self.context.dry_run,
        )

        if affected > 0:
            self.note("Updated", row)
            return True
        self.warn("Skipped", row)
        return False
