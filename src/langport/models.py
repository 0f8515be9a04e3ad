"""
Data model for langport.

Content-tree records (languages, fields, templates, items) as read from the
content store, the exchange row, and the typed option structs that configure
exporter, importer and ports for one run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

# Textarea content types; anything >= HTML holds markup
CONTENT_TYPE_UNKNOWN = 0
CONTENT_TYPE_HTML = 1
CONTENT_TYPE_IMAGE_HTML = 2


class RowType(str, Enum):
    """Value type of an exchanged row."""

    TEXT = "text"
    TEXTAREA = "textarea"
    MARKUP = "markup"


class SourceToTarget(Enum):
    """Whether exported rows repeat the source value in the target."""

    OFF = "off"
    EMPTY = "empty"  # only where the target is empty
    FORCE = "force"  # even where the target is already translated

    @classmethod
    def coerce(cls, value: Any) -> "SourceToTarget":
        """Accept enum members, names, booleans and the legacy 0/1/2 integers."""
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.OFF
        if value is True:
            return cls.EMPTY
        if isinstance(value, int):
            return {0: cls.OFF, 1: cls.EMPTY, 2: cls.FORCE}.get(value, cls.EMPTY)
        text = str(value).strip().lower()
        for member in cls:
            if text == member.value:
                return member
        raise ValueError(
            f"Invalid source_to_target '{value}'. Valid values: {[m.value for m in cls]}"
        )


@dataclass(frozen=True)
class Language:
    """A language registered in the content store."""

    id: int
    name: str
    title: str = ""
    is_default: bool = False

    @property
    def label(self) -> str:
        """Bundle label, i.e. "fr (French)"."""
        return f"{self.name} ({self.title})"

    @property
    def data_column(self) -> str:
        """Column holding this language's value in a scalar field table."""
        return "data" if self.is_default else f"data{self.id}"


@dataclass
class Field:
    """A field definition: name, fieldtype tag and type-specific settings."""

    id: int
    name: str
    type: str
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def table(self) -> str:
        """Name of the table that stores this field's values."""
        return f"field_{self.name}"

    @property
    def content_type(self) -> int:
        return int(self.settings.get("content_type") or CONTENT_TYPE_UNKNOWN)

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)


@dataclass
class Template:
    """An item schema: ordered fields plus URL-segment policy."""

    id: int
    name: str
    fields: List[Field] = field(default_factory=list)
    url_segments: bool = False


@dataclass
class Item:
    """One node of the content tree."""

    id: int
    parent_id: int
    template_id: int
    name: str
    sort: int = 0
    status: int = 1

    @property
    def published(self) -> bool:
        return self.status > 0


@dataclass
class Row:
    """
    The unit of exchange between export and import.

    item_path and field_path may hold a drill-down chain joined by " > "
    when the row was produced inside a container field.
    """

    item_path: str
    field_path: str
    type: RowType = RowType.TEXT
    source: str = ""
    target: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in bundle form; an all-digit item path is written as an integer."""
        page: Any = self.item_path
        if page.isdigit():
            page = int(page)
        return {
            "page": page,
            "field": self.field_path,
            "type": self.type.value,
            "source": self.source,
            "target": self.target,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Row":
        return cls(
            item_path=str(data.get("page", "")),
            field_path=str(data.get("field", "")),
            type=RowType(data.get("type") or RowType.TEXT.value),
            source="" if data.get("source") is None else str(data.get("source")),
            target="" if data.get("target") is None else str(data.get("target")),
        )


@dataclass
class ExportOptions:
    """Row admission and path policy for one export run."""

    omit_blank: bool = True
    omit_translated: bool = False
    source_to_target: SourceToTarget = SourceToTarget.OFF
    compact: bool = False
    limit_fields: List[str] = field(default_factory=list)


@dataclass
class ImportOptions:
    """Write policy for one import run."""

    overwrite: bool = False
    confirm_source: bool = False
    verbose: bool = False
    dry_run: bool = False
    update_links: bool = True
    fields: List[str] = field(default_factory=list)
    template_ids: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class PortContext:
    """Everything a port needs to know about the current run."""

    source: Language
    target: Language
    overwrite: bool = False
    confirm_source: bool = False
    verbose: bool = False
    dry_run: bool = False
    update_links: bool = True
    omit_blank: bool = True

    @classmethod
    def for_export(cls, source: Language, target: Language,
                   options: ExportOptions) -> "PortContext":
        return cls(source=source, target=target, omit_blank=options.omit_blank)

    @classmethod
    def for_import(cls, source: Language, target: Language,
                   options: ImportOptions) -> "PortContext":
        return cls(
            source=source,
            target=target,
            overwrite=options.overwrite,
            confirm_source=options.confirm_source,
            verbose=options.verbose,
            dry_run=options.dry_run,
            update_links=options.update_links,
        )


@dataclass
class PathInfo:
    """Result of resolving a site path."""

    response: int
    language_name: str = ""
    item_id: int = 0
    template_id: int = 0
    url_segment_str: str = ""
    url_segments: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.response < 400


TRANSLATABLE_TABLE_COLUMN_TYPES: Dict[str, RowType] = {
    "textLanguage": RowType.TEXT,
    "textareaLanguage": RowType.TEXTAREA,
    "textareaCKELanguage": RowType.MARKUP,
}

SCALAR_LANGUAGE_TYPES: FrozenSet[str] = frozenset(
    {"TextLanguage", "TextareaLanguage", "PageTitleLanguage"}
)
TEXTAREA_TYPES: FrozenSet[str] = frozenset({"TextareaLanguage", "Textarea"})
FILE_TYPES: FrozenSet[str] = frozenset({"File", "Image"})


def optional_int(value: Any) -> Optional[int]:
    """Return value as int when it is all digits, else None."""
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    return None
