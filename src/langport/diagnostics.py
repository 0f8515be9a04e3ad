"""
Diagnostics sink for ports and orchestrators.

Collects per-row notes and warnings during verbose or dry-run imports. Values
longer than DISPLAY_CAP are truncated in the recorded payload only; storage is
never affected.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .models import Row

logger = logging.getLogger(__name__)

# Maximum characters of a source/target value shown in a diagnostic
DISPLAY_CAP = 255


def truncate(value: str, cap: int = DISPLAY_CAP) -> str:
    if value is not None and len(value) > cap:
        return value[:cap]
    return value


def display_payload(row: Union[Row, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
    """Copy of a row for display with long source/target values truncated."""
    if row is None:
        return None
    payload = row.to_dict() if isinstance(row, Row) else dict(row)
    for key in ("source", "target"):
        if isinstance(payload.get(key), str):
            payload[key] = truncate(payload[key])
    return payload


@dataclass
class Notice:
    """One recorded diagnostic line."""

    level: str  # "note" or "warning"
    message: str
    payload: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if self.payload is None:
            return self.message
        return f"{self.message}: {self.payload}"


@dataclass
class Diagnostics:
    """
    note()/warn() sink; silent unless verbose or dry_run is set.

    Notes go to logger.info and warnings to logger.warning, and both are kept
    in `notices` for the run result.
    """

    verbose: bool = False
    dry_run: bool = False
    notices: List[Notice] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return self.verbose or self.dry_run

    def note(self, message: str, row: Union[Row, Dict[str, Any], None] = None) -> None:
        self._record("note", message, row)

    def warn(self, message: str, row: Union[Row, Dict[str, Any], None] = None) -> None:
        self._record("warning", message, row)

    def _record(self, level: str, message: str, row: Union[Row, Dict[str, Any], None]) -> None:
        if not self.enabled:
            return
        notice = Notice(level=level, message=message, payload=display_payload(row))
        self.notices.append(notice)
        if level == "warning":
            logger.warning(str(notice))
        else:
            logger.info(str(notice))

    @property
    def warnings(self) -> List[Notice]:
        return [n for n in self.notices if n.level == "warning"]
