"""
Field export engine for langport.

Walks the fields of content items, lets the first matching port emit rows for
each field and collects them into a translation bundle.

Key features:
- Leaf ports run in field order; container ports are queued and run after all
  leaf fields of the same item, in their original field order
- Rows exported inside container fields carry the "a > b" chain of enclosing
  item ids and field names (unless compact mode is on)
- One admission policy for every port: omit blank sources, copy source to
  target, omit already translated rows
- Markup rows are expanded through the content store's markup wakeup

Usage:
    exporter = FieldExporter(store, ExportOptions(omit_translated=True))
    bundle = exporter.export_items([1, 12], source, target)
    # or
    exporter.export_to_file([1, 12], source, target, output_path)
"""

import logging
import time
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from . import row_path
from .bundle import BUNDLE_VERSION, save_bundle
from .diagnostics import Diagnostics
from .hooks import HookContext, HookManager, HookType
from .links import LinkLocalizer
from .models import (
    CONTENT_TYPE_HTML,
    ExportOptions,
    Field,
    Language,
    PortContext,
    Row,
    RowType,
    SourceToTarget,
)
from .ports import DEFAULT_PORTS, Port, build_ports, find_port
from .row_path import FieldStack
from .store import ContentStore, ItemCache

logger = logging.getLogger(__name__)


class FieldExporter:
    """
    Export translatable field values of items to bundle rows.

    One exporter instance runs one export at a time; begin() (called by
    export_items) resets all per-run state.
    """

    def __init__(
        self,
        store: ContentStore,
        options: Optional[ExportOptions] = None,
        hooks: Optional[HookManager] = None,
        port_classes: Sequence[Type[Port]] = DEFAULT_PORTS,
    ):
        self.store = store
        self.options = options or ExportOptions()
        self.options.source_to_target = SourceToTarget.coerce(self.options.source_to_target)
        self.hooks = hooks if hooks is not None else HookManager()
        self.port_classes = port_classes

        self.source: Optional[Language] = None
        self.target: Optional[Language] = None
        self.ports: List[Port] = []
        self.item_cache = ItemCache(store)
        self.field_stack = FieldStack()
        self.diagnostics = Diagnostics()
        self._rows: List[Row] = []
        self._used_fields: "OrderedDict[str, str]" = OrderedDict()
        self._limit_fields: List[str] = list(self.options.limit_fields)

    # ------------------------------------------------------------------
    # Run setup
    # ------------------------------------------------------------------

    def begin(self, source: Language, target: Language) -> None:
        """Bind the language pair and reset per-run state."""
        self.source = source
        self.target = target
        context = PortContext.for_export(source, target, self.options)
        links = LinkLocalizer(self.store)
        self.ports = build_ports(
            self.store, context, self.diagnostics, links, self.port_classes
        )
        for port in self.ports:
            port.bind_exporter(self)
        self.item_cache.clear()
        self.field_stack = FieldStack()
        self._rows = []
        self._used_fields = OrderedDict()
        self._limit_fields = list(self.options.limit_fields)
        logger.debug(
            f"Export {source.name} -> {target.name} with ports: "
            f"{', '.join(p.name for p in self.ports)}"
        )

    @property
    def rows(self) -> List[Row]:
        return list(self._rows)

    @property
    def used_fields(self) -> Dict[str, str]:
        return dict(self._used_fields)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def export_items(
        self, item_ids: Iterable[int], source: Language, target: Language
    ) -> Dict[str, Any]:
        """
        Export items to a bundle.

        Args:
            item_ids: Items to export, in order.
            source: Language exported as row source.
            target: Language exported as row target.

        Returns:
            Bundle dict ready for save_bundle().
        """
        start_time = time.time()
        self.begin(source, target)

        data: Dict[str, Any] = {
            "source_language": source.label,
            "target_language": target.label,
            "version": BUNDLE_VERSION,
            "exported": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }

        item_ids = [int(i) for i in item_ids]
        for item_id in item_ids:
            self.export_item(item_id)

        data["fields"] = dict(self._used_fields)
        data["items"] = [row.to_dict() for row in self._rows]
        self._rows = []

        self.hooks.execute(HookType.POST_EXPORT, HookContext(data=data))

        duration = (time.time() - start_time) * 1000
        logger.info(
            f"Exported {len(data['items'])} row(s) from {len(item_ids)} item(s) "
            f"in {duration:.1f}ms"
        )
        return data

    def export_item(self, item_id: int, template_id: int = 0) -> None:
        """
        Export the fields of one item.

        Args:
            item_id: Item to export.
            template_id: Item schema to use; looked up from the item when 0.
        """
        if self.source is None or self.target is None:
            raise RuntimeError("FieldExporter.begin() must be called before export_item()")

        template = (
            self.store.get_template(template_id) if template_id
            else self.store.get_item_schema(item_id)
        )
        if template is None:
            logger.warning(f"No item schema found for item {item_id}; skipped")
            return

        deferred: List[Tuple[Port, Field]] = []

        for field in template.fields:
            if self._limit_fields and field.name not in self._limit_fields:
                continue
            port = find_port(self.ports, field)
            if port is None:
                continue
            if port.is_container():
                deferred.append((port, field))
                continue
            with self.field_stack.enter(item_id, field.name):
                port.export(item_id, field)

        for port, field in deferred:
            with self.field_stack.enter(item_id, field.name):
                port.export(item_id, field)

    def export_item_all_fields(self, item_id: int, template_id: int = 0) -> None:
        """Export an item ignoring limit_fields (used for container children)."""
        limit_fields = self._limit_fields
        self._limit_fields = []
        try:
            self.export_item(item_id, template_id)
        finally:
            self._limit_fields = limit_fields

    # ------------------------------------------------------------------
    # Row collection
    # ------------------------------------------------------------------

    def add_row(self, item_id: int, field: Field, row: Row, type_name: str = "") -> bool:
        """
        Admit a row emitted by a port.

        Returns:
            True if the row was added to the bundle.
        """
        options = self.options

        if options.omit_blank and not row.source:
            return False

        if not row.target:
            if options.source_to_target is not SourceToTarget.OFF:
                row.target = row.source
        elif options.source_to_target is SourceToTarget.FORCE:
            row.target = row.source
        elif options.omit_translated:
            return False

        self.prepare_row(item_id, field, row)

        self._used_fields[row_path.strip_indexes(row.field_path)] = type_name or field.type
        self._rows.append(row)
        return True

    def prepare_row(self, item_id: int, field: Field, row: Row) -> None:
        """Expand markup and prefix nested paths."""
        if row.type is RowType.MARKUP and field.content_type >= CONTENT_TYPE_HTML:
            item = self.item_cache.get(item_id)
            if item is not None:
                row.source = self.store.wakeup_markup(item, row.source)
                if row.target:
                    row.target = self.store.wakeup_markup(item, row.target)

        if not self.options.compact:
            row.item_path, row.field_path = self.field_stack.prefix(row.item_path, row.field_path)

    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------

    def installed_language_types(self) -> List[str]:
        """Fieldtype tags of existing fields that some usable port can export."""
        if not self.ports:
            default = self.store.default_language()
            self.begin(default, default)
        types: List[str] = []
        for port in self.ports:
            for fieldtype in port.fieldtypes():
                if fieldtype not in types:
                    types.append(fieldtype)
        return types

    def export_to_file(
        self,
        item_ids: Iterable[int],
        source: Language,
        target: Language,
        output_path: Path,
    ) -> Dict[str, Any]:
        """Export items and write the bundle to output_path."""
        data = self.export_items(item_ids, source, target)
        save_bundle(data, output_path)
        return data
