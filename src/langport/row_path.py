"""
Row path tokens.

A row's field path identifies one storage location:
- name                  scalar column value
- name[key]             per-attachment description (key = filename)
- name[rowId].col       per-row, per-column table cell
- name.property         named property inside a delimited-properties blob

Rows produced inside container fields carry a drill-down chain, each level
joined by " > ", e.g. item path "12 > 40" and field path "blocks > body.intro".
The last segment always names the storage location; earlier segments record
provenance only.
"""

import re
from contextlib import contextmanager
from typing import Iterator, List, Tuple

CHAIN_SEPARATOR = " > "

_INDEX_RE = re.compile(r"\[[^\]]+\]")
_COLUMN_RE = re.compile(r"^[A-Za-z0-9_]+$")


def split_chain(value: str) -> List[str]:
    """Split an "a > b > c" chain into stripped segments."""
    return [part.strip() for part in str(value).split(">")]


def last_segment(value: str) -> str:
    """Return the last segment of a chain ("a > b" -> "b")."""
    return split_chain(value)[-1]


def field_name(value: str) -> str:
    """
    Return the field name a path addresses.

    "a > b" -> "b", "a.b" -> "a", "a[1]" -> "a", "a[1].col" -> "a".
    """
    value = last_segment(value)
    if "[" in value[1:]:
        value = value.split("[", 1)[0]
    if "." in value[1:]:
        value = value.split(".", 1)[0]
    return value.strip()


def field_column(value: str) -> str:
    """Return "col" from "field[n].col", or "" when absent or not a plain name."""
    value = last_segment(value)
    if "." not in value:
        return ""
    column = value.rsplit(".", 1)[1]
    return column if _COLUMN_RE.match(column) else ""


def field_property(value: str) -> str:
    """Return "property" from "field.property", or "" when absent."""
    value = last_segment(value)
    if "." not in value[1:]:
        return ""
    return value.rsplit(".", 1)[1]


def field_index(value: str) -> str:
    """Return "index" from "field[index]" or "field[index].col", or ""."""
    value = last_segment(value)
    if "[" not in value:
        return ""
    inner = value.split("[", 1)[1]
    return inner.split("]", 1)[0]


def item_id(value: object) -> int:
    """
    Return the item id a row's item path addresses.

    "123 > 456" -> 456. Returns 0 when the last segment is not all digits.
    """
    value = last_segment(str(value))
    if not value.isdigit():
        return 0
    return int(value)


def strip_indexes(value: str) -> str:
    """Remove "[...]" parts: "images[a.jpg]" -> "images", "t[3].col" -> "t.col"."""
    if "[" not in value:
        return value
    return _INDEX_RE.sub("", value)


def with_index(name: str, index: object) -> str:
    return f"{name}[{index}]"


class FieldStack:
    """
    Stack of "<itemId>.<fieldName>" entries for the field being exported.

    More than one entry means the export is inside a container field; rows are
    then prefixed with every entry but the last.
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[str, str]] = []

    def __len__(self) -> int:
        return len(self._entries)

    @contextmanager
    def enter(self, item_id: int, field_name: str) -> Iterator[None]:
        self._entries.append((str(item_id), field_name))
        try:
            yield
        finally:
            self._entries.pop()

    @property
    def nested(self) -> bool:
        return len(self._entries) > 1

    def prefix(self, item_path: str, field_path: str) -> Tuple[str, str]:
        """Prefix paths with the enclosing container chain (no-op when not nested)."""
        if not self.nested:
            return item_path, field_path
        outer = self._entries[:-1]
        items = CHAIN_SEPARATOR.join(entry[0] for entry in outer)
        fields = CHAIN_SEPARATOR.join(entry[1] for entry in outer)
        return (
            f"{items}{CHAIN_SEPARATOR}{item_path}",
            f"{fields}{CHAIN_SEPARATOR}{field_path}",
        )
