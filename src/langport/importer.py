"""
Bundle import engine for langport.

Validates a translation bundle and applies its rows to the content store
through the port that owns each field.

Key features:
- Validation first: a malformed, outdated or unresolvable bundle aborts the
  import before any write
- Rows are applied strictly in bundle order; each write is autonomous, so a
  cancelled import needs no rollback
- Per-row outcomes (imported, empty, excluded, not found, skipped) are
  counted and logged instead of raised
- Dry-run runs the same matching predicates as a real import without writing

Usage:
    importer = FieldImporter(store)
    result = importer.import_bundle(load_bundle(path), ImportOptions(overwrite=True))
    for line in result.summary_lines():
        print(line)
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Type

from . import row_path
from .bundle import BUNDLE_VERSION, validate_bundle
from .diagnostics import Diagnostics, Notice, display_payload
from .errors import LanguageNotFoundError
from .hooks import HookContext, HookManager, HookType, unescape_plain_text_entities
from .links import LinkLocalizer
from .models import Field, ImportOptions, Language, PortContext, Row
from .ports import DEFAULT_PORTS, Port, build_ports, find_port
from .store import ContentStore

logger = logging.getLogger(__name__)


class RowOutcome(Enum):
    """Terminal outcome of one bundle row."""

    IMPORTED = "imported"
    EMPTY = "empty"  # target value empty, nothing to apply
    EXCLUDED = "excluded"  # field or item schema not in the allowlist
    NOT_FOUND = "not_found"  # field or item could not be resolved
    SKIPPED = "skipped"  # conflict, up-to-date, hook skip or no-op write


@dataclass
class RowReport:
    """Outcome of one row, with the reason when it was not imported."""

    index: int
    outcome: RowOutcome
    field_path: str
    item_path: str
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "outcome": self.outcome.value,
            "field": self.field_path,
            "page": self.item_path,
            "reason": self.reason,
        }


@dataclass
class ImportResult:
    """Result of importing one bundle."""

    source_language: str = ""
    target_language: str = ""
    dry_run: bool = False
    verbose: bool = False
    cancelled: bool = False

    imported: int = 0
    skipped: int = 0  # every row not imported
    empty: int = 0
    excluded: int = 0
    not_found: int = 0

    item_ids: Set[int] = field(default_factory=set)
    missing_fields: List[str] = field(default_factory=list)
    rows: List[RowReport] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)

    # Timing
    duration_ms: float = 0.0

    def record(self, report: RowReport) -> None:
        self.rows.append(report)
        if report.outcome is RowOutcome.IMPORTED:
            self.imported += 1
            return
        self.skipped += 1
        if report.outcome is RowOutcome.EMPTY:
            self.empty += 1
        elif report.outcome is RowOutcome.EXCLUDED:
            self.excluded += 1
        elif report.outcome is RowOutcome.NOT_FOUND:
            self.not_found += 1

    def summary_lines(self, verbose: Optional[bool] = None) -> List[str]:
        """User-visible summary, most important line first."""
        verbose = self.verbose if verbose is None else verbose
        lines = []
        if self.imported:
            label = "Tested import" if self.dry_run else "Completed import"
            lines.append(
                f"{label} of {self.imported} row(s) for {len(self.item_ids)} item(s)"
            )
        if self.skipped:
            lines.append(f"Skipped {self.skipped} row(s)")
        if self.missing_fields:
            lines.append(f"Skipped fields that were not found: {', '.join(self.missing_fields)}")
        if self.empty and verbose:
            lines.append(f"{self.empty} row(s) had empty target values that were ignored")
        if self.cancelled:
            lines.append("Import cancelled before all rows were processed")
        if not lines:
            lines.append("Nothing to import")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON/logging."""
        return {
            "source_language": self.source_language,
            "target_language": self.target_language,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "imported": self.imported,
            "skipped": self.skipped,
            "empty": self.empty,
            "excluded": self.excluded,
            "not_found": self.not_found,
            "item_ids": sorted(self.item_ids),
            "missing_fields": self.missing_fields,
            "rows": [r.to_dict() for r in self.rows],
            "notices": [str(n) for n in self.notices],
            "duration_ms": self.duration_ms,
        }


class FieldImporter:
    """
    Apply bundle rows to the content store.

    Usage:
        importer = FieldImporter(store)
        result = importer.import_bundle(data, ImportOptions(dry_run=True))
    """

    def __init__(
        self,
        store: ContentStore,
        hooks: Optional[HookManager] = None,
        port_classes: Sequence[Type[Port]] = DEFAULT_PORTS,
        unescape_entities: bool = True,
        required_version: int = BUNDLE_VERSION,
    ):
        self.store = store
        self.hooks = hooks if hooks is not None else HookManager()
        self.port_classes = port_classes
        self.required_version = required_version
        self._cancelled = False
        if unescape_entities:
            self.hooks.register(
                HookType.ROW_READY,
                unescape_plain_text_entities,
                name="unescape_plain_text_entities",
                priority=10,
            )

    def cancel(self) -> None:
        """Stop after the row currently being imported."""
        self._cancelled = True

    def resolve_languages(self, data: Dict[str, Any]) -> Tuple[Language, Language]:
        """
        Resolve the bundle's source and target languages.

        Raises:
            LanguageNotFoundError: If either language is unknown.
        """
        source = self.store.resolve_language(data.get("source_language"))
        if source is None:
            raise LanguageNotFoundError(str(data.get("source_language")), "source language")
        target = self.store.resolve_language(data.get("target_language"))
        if target is None:
            raise LanguageNotFoundError(str(data.get("target_language")), "target language")
        return source, target

    def import_bundle(
        self, data: Dict[str, Any], options: Optional[ImportOptions] = None
    ) -> ImportResult:
        """
        Import a bundle.

        Args:
            data: Decoded bundle.
            options: Write policy; defaults to ImportOptions().

        Returns:
            ImportResult with per-row outcomes and counts.

        Raises:
            ValidationError: If the bundle is invalid (nothing is written).
        """
        start_time = time.time()
        options = options or ImportOptions()
        self._cancelled = False

        validate_bundle(data, self.store, self.required_version).raise_for_errors()
        source, target = self.resolve_languages(data)

        result = ImportResult(
            source_language=source.label,
            target_language=target.label,
            dry_run=options.dry_run,
            verbose=options.verbose,
        )

        diagnostics = Diagnostics(verbose=options.verbose, dry_run=options.dry_run)
        context = PortContext.for_import(source, target, options)
        ports = build_ports(
            self.store, context, diagnostics, LinkLocalizer(self.store), self.port_classes
        )
        logger.debug(f"Import {source.name} -> {target.name} with {len(ports)} port(s)")

        self._apply_rows(data["items"], options, ports, result, diagnostics)

        result.notices = list(diagnostics.notices)
        self.hooks.execute(HookType.POST_IMPORT, HookContext(result=result))

        result.duration_ms = (time.time() - start_time) * 1000
        for line in result.summary_lines():
            logger.info(line)
        return result

    def _apply_rows(
        self,
        items: List[Dict[str, Any]],
        options: ImportOptions,
        ports: List[Port],
        result: ImportResult,
        diagnostics: Diagnostics,
    ) -> None:
        missing: Dict[str, str] = {}
        rejected_items: Set[int] = set()
        template_ids = [int(t) for t in options.template_ids]

        for index, data in enumerate(items):
            if self._cancelled:
                result.cancelled = True
                logger.info(f"Import cancelled at row {index}")
                break

            row = Row.from_dict(data)

            def report(outcome: RowOutcome, reason: str = "", notify: bool = True) -> None:
                result.record(RowReport(index, outcome, row.field_path, row.item_path, reason))
                if reason and outcome is not RowOutcome.IMPORTED:
                    logger.debug(f"Row {index} {outcome.value}: {reason} {display_payload(row)}")
                    if notify:
                        diagnostics.warn(f"Row {index} skipped: {reason}", row)

            if row.field_path in missing:
                report(RowOutcome.NOT_FOUND, "field not found")
                continue

            if not row.target:
                report(RowOutcome.EMPTY, "empty target")
                continue

            field = self._resolve_field(row)

            if options.fields and not self._field_allowed(row, field, options.fields):
                report(RowOutcome.EXCLUDED, "field not in allowlist")
                continue

            if field is None:
                missing[row.field_path] = row_path.field_name(row.field_path)
                if missing[row.field_path] not in result.missing_fields:
                    result.missing_fields.append(missing[row.field_path])
                report(RowOutcome.NOT_FOUND, "field not found")
                continue

            item_id = row_path.item_id(row.item_path)
            if not item_id or self.store.get_item(item_id) is None:
                report(RowOutcome.NOT_FOUND, f"item not found: {row.item_path}")
                continue

            if item_id in rejected_items:
                report(RowOutcome.EXCLUDED, "item schema not in allowlist")
                continue

            if template_ids and item_id not in result.item_ids:
                if not self.store.item_has_template(item_id, template_ids):
                    rejected_items.add(item_id)
                    report(RowOutcome.EXCLUDED, "item schema not in allowlist")
                    continue

            hook_context = self.hooks.execute(
                HookType.ROW_READY, HookContext(row=row, field=field, item_id=item_id)
            )
            if hook_context.skipped:
                report(RowOutcome.SKIPPED, hook_context.skip_reason or "skipped by hook")
                continue

            port = find_port(ports, field)
            if port is None:
                report(RowOutcome.SKIPPED, f"no port for fieldtype {field.type}")
                continue

            if port.import_row(item_id, field, row):
                result.item_ids.add(item_id)
                report(RowOutcome.IMPORTED)
            else:
                # the port already reported why
                report(RowOutcome.SKIPPED, f"not written by {port.name}", notify=False)

    def _resolve_field(self, row: Row) -> Optional[Field]:
        name = row_path.field_name(row.field_path)
        if not name:
            return None
        return self.store.get_field(name)

    @staticmethod
    def _field_allowed(row: Row, field: Optional[Field], allowed: List[str]) -> bool:
        """A field passes when its full row path or its field name is listed."""
        if row.field_path in allowed:
            return True
        name = field.name if field is not None else row_path.field_name(row.field_path)
        return name in allowed


def import_bundle(
    store: ContentStore,
    data: Dict[str, Any],
    options: Optional[ImportOptions] = None,
    hooks: Optional[HookManager] = None,
) -> ImportResult:
    """Convenience wrapper around FieldImporter.import_bundle."""
    return FieldImporter(store, hooks=hooks).import_bundle(data, options)
