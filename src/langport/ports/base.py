"""
Base port interface for langport.

A port knows how to read and write one storage encoding of translatable
field values. Every port must implement:
- portable(): whether the port handles a given field
- export(): emit rows for one item's field through the bound exporter
- import_row(): write one row's target value back to storage

Container ports (is_container() == True) hold no leaf text: they re-run the
item export on referenced child items and never import anything themselves.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from ..diagnostics import Diagnostics
from ..links import LinkLocalizer
from ..models import Field, PortContext, Row, RowType
from ..store import ContentStore

if TYPE_CHECKING:
    from ..exporter import FieldExporter

logger = logging.getLogger(__name__)


class Port(ABC):
    """
    Base class for storage-encoding adapters.

    A port is bound to one run's PortContext and owns no data beyond it.
    """

    #: Fieldtype capability that must be installed for the port to be usable
    required_fieldtype: Optional[str] = None

    def __init__(
        self,
        store: ContentStore,
        context: PortContext,
        diagnostics: Optional[Diagnostics] = None,
        links: Optional[LinkLocalizer] = None,
    ):
        self.store = store
        self.context = context
        self.diagnostics = diagnostics or Diagnostics(
            verbose=context.verbose, dry_run=context.dry_run
        )
        self.links = links or LinkLocalizer(store)
        self.exporter: Optional["FieldExporter"] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def usable(self) -> bool:
        """Is the storage capability this port needs present?"""
        if self.required_fieldtype is None:
            return True
        return self.store.fieldtype_installed(self.required_fieldtype)

    def is_container(self) -> bool:
        """Defer and recurse into child items instead of emitting rows?"""
        return False

    @abstractmethod
    def portable(self, field: Field) -> bool:
        """Can this port be used for the given field?"""
        ...

    @abstractmethod
    def export(self, item_id: int, field: Field) -> None:
        """Emit rows for the field of one item."""
        ...

    @abstractmethod
    def import_row(self, item_id: int, field: Field, row: Row) -> bool:
        """
        Write one row to storage.

        Returns:
            True if storage was (or in dry-run would be) changed.
        """
        ...

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def bind_exporter(self, exporter: "FieldExporter") -> None:
        self.exporter = exporter

    def portable_fields(self) -> List[Field]:
        if not self.usable():
            return []
        return [f for f in self.store.list_fields() if self.portable(f)]

    def fieldtypes(self) -> List[str]:
        """Fieldtype tags of all fields this port can handle."""
        types: List[str] = []
        for field in self.portable_fields():
            if field.type not in types:
                types.append(field.type)
        return types

    def row_template(self, item_id: int, field: Field) -> Row:
        return Row(item_path=str(item_id), field_path=field.name, type=RowType.TEXT)

    def emit(self, item_id: int, field: Field, row: Row) -> None:
        if self.exporter is None:
            raise RuntimeError(f"{self.name} has no exporter bound")
        self.exporter.add_row(item_id, field, row)

    def localize_links(self, row: Row) -> int:
        """Rewrite internal links of a markup row for the target language."""
        if row.type is not RowType.MARKUP or not self.context.update_links:
            return 0
        count = self.links.localize_row(row, self.context.source, self.context.target)
        if count:
            self.note(f"Updated {count} link(s) in markup", row)
        return count

    def note(self, message: str, row: Optional[Row] = None) -> None:
        self.diagnostics.note(message, row)

    def warn(self, message: str, row: Optional[Row] = None) -> None:
        self.diagnostics.warn(message, row)


def normalize_newlines(value: str) -> str:
    """Convert \\r\\n and \\r line endings to \\n."""
    return value.replace("\r\n", "\n").replace("\r", "\n")
