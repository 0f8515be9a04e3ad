"""
Container ports: fields whose value references other items.

Containers emit no rows of their own. Export re-runs the exporter on every
referenced child item with all of the child's fields; the exporter's field
stack gives the child rows their nested path chain. Child rows are imported by
their own leaf ports, so import_row is a no-op here.
"""

import logging
from typing import List, Tuple

from ..models import Field, Row
from .base import Port

logger = logging.getLogger(__name__)


class ContainerPort(Port):
    """Base for ports that recurse into referenced child items."""

    fieldtype = ""

    def is_container(self) -> bool:
        return True

    def portable(self, field: Field) -> bool:
        return field.type == self.fieldtype

    def children(self, item_id: int, field: Field) -> List[Tuple[int, int]]:
        """Referenced (child item id, template id) pairs in export order; 0 = look up."""
        raise NotImplementedError

    def export(self, item_id: int, field: Field) -> None:
        if self.exporter is None:
            raise RuntimeError(f"{self.name} has no exporter bound")
        children = self.children(item_id, field)
        logger.debug(f"{field.name}: exporting {len(children)} child item(s) of item {item_id}")
        for child_id, template_id in children:
            self.exporter.export_item_all_fields(child_id, template_id)

    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        return False


class FieldsetPort(ContainerPort):
    """Fieldset fields: one child item referenced from the field table."""

    required_fieldtype = "FieldsetPage"
    fieldtype = "FieldsetPage"

    def children(self, item_id: int, field: Field) -> List[Tuple[int, int]]:
        records = self.store.query_raw_column(field.table, item_id, ["data"])
        child_id = int(records[0]["data"] or 0) if records else 0
        if not child_id:
            return []
        return [(child_id, 0)]


class RepeaterPort(ContainerPort):
    """Repeater fields: ordered children under for-field-N/for-page-N."""

    required_fieldtype = "Repeater"

    def portable(self, field: Field) -> bool:
        return field.type in ("Repeater", "RepeaterMatrix")

    def children(self, item_id: int, field: Field) -> List[Tuple[int, int]]:
        return [
            (int(record["id"]), int(record["template_id"]))
            for record in self.store.child_ids_by_parent_chain(item_id, field)
        ]


class PageTablePort(ContainerPort):
    """Page table fields: ordered child item ids in the field table."""

    required_fieldtype = "PageTable"
    fieldtype = "PageTable"

    def children(self, item_id: int, field: Field) -> List[Tuple[int, int]]:
        records = self.store.query_raw_column(field.table, item_id, ["data"], order_by="sort")
        return [(int(record["data"]), 0) for record in records if record["data"]]
