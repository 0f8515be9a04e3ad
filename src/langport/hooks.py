"""
Hook system for langport.

Lets callers extend export and import runs without modifying the orchestrators.

Supported hooks:
- row_ready: Called for each bundle row right before its port writes it.
  Callbacks may mutate `context.row` or call `context.skip()` to force the row
  to be skipped.
- post_export: Called once with the finished bundle dict.
- post_import: Called once with the ImportResult.

A HookManager instance belongs to one exporter/importer; there is no
process-wide default manager.
"""

import html
import logging
import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .models import Field, Row, RowType

logger = logging.getLogger(__name__)


class HookType(Enum):
    """Available hook points."""

    ROW_READY = "row_ready"
    POST_EXPORT = "post_export"
    POST_IMPORT = "post_import"


@dataclass
class HookContext:
    """
    Context passed to hook callbacks.

    For row_ready, `row`, `field` and `item_id` are set. For post_export,
    `data` holds the bundle; for post_import, `result` holds the ImportResult.
    """

    row: Optional[Row] = None
    field: Optional[Field] = None
    item_id: int = 0
    data: Dict[str, Any] = dataclass_field(default_factory=dict)
    result: Any = None

    # Error collection
    errors: List[str] = dataclass_field(default_factory=list)
    warnings: List[str] = dataclass_field(default_factory=list)

    # Control flags
    skipped: bool = False
    skip_reason: str = ""

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def skip(self, reason: str = "") -> None:
        """Force the current row to be skipped."""
        self.skipped = True
        self.skip_reason = reason


# Hook callback type
HookCallback = Callable[[HookContext], None]


@dataclass
class RegisteredHook:
    """Information about a registered hook callback."""

    callback: HookCallback
    name: str
    priority: int = 100
    abort_on_error: bool = False


class HookManager:
    """Registration and execution of hook callbacks."""

    def __init__(self):
        self._hooks: Dict[HookType, List[RegisteredHook]] = {
            hook_type: [] for hook_type in HookType
        }

    @staticmethod
    def _coerce(hook_type: Union[HookType, str]) -> HookType:
        if isinstance(hook_type, HookType):
            return hook_type
        try:
            return HookType(hook_type)
        except ValueError:
            valid_types = [h.value for h in HookType]
            raise ValueError(f"Invalid hook type '{hook_type}'. Valid types: {valid_types}")

    def register(
        self,
        hook_type: Union[HookType, str],
        callback: HookCallback,
        *,
        name: Optional[str] = None,
        priority: int = 100,
        abort_on_error: bool = False,
    ) -> None:
        """
        Register a hook callback.

        Args:
            hook_type: The hook point to register for.
            callback: Function receiving a HookContext.
            name: Optional name for this registration (defaults to the function name).
            priority: Execution priority (lower = earlier). Default is 100.
            abort_on_error: If True, an exception from the callback propagates.

        Raises:
            ValueError: If hook_type is invalid.
        """
        hook_type = self._coerce(hook_type)
        hook_name = name or callback.__name__
        self._hooks[hook_type].append(
            RegisteredHook(
                callback=callback,
                name=hook_name,
                priority=priority,
                abort_on_error=abort_on_error,
            )
        )
        self._hooks[hook_type].sort(key=lambda h: h.priority)
        logger.debug(f"Registered hook '{hook_name}' for {hook_type.value} (priority: {priority})")

    def unregister(self, hook_type: Union[HookType, str], name: str) -> int:
        """
        Unregister hook callbacks by name.

        Returns:
            Number of hooks unregistered.
        """
        hook_type = self._coerce(hook_type)
        hooks = self._hooks[hook_type]
        original_count = len(hooks)
        self._hooks[hook_type] = [h for h in hooks if h.name != name]
        return original_count - len(self._hooks[hook_type])

    def execute(self, hook_type: Union[HookType, str], context: HookContext) -> HookContext:
        """
        Run all callbacks for a hook point in priority order.

        Stops early once a callback skips the row. A failing callback is logged
        and recorded in context.errors unless it was registered with
        abort_on_error, in which case the exception propagates.
        """
        hook_type = self._coerce(hook_type)
        for registered in self._hooks[hook_type]:
            if context.skipped:
                break
            try:
                registered.callback(context)
            except Exception as e:
                if registered.abort_on_error:
                    raise
                error_msg = f"Hook '{registered.name}' raised an error: {e}"
                logger.warning(error_msg)
                logger.debug("Hook error details:", exc_info=True)
                context.add_error(error_msg)
        return context

    def list_hooks(self) -> Dict[str, List[str]]:
        return {ht.value: [h.name for h in hooks] for ht, hooks in self._hooks.items()}

    def __len__(self) -> int:
        return sum(len(hooks) for hooks in self._hooks.values())


_ENTITY_RE = re.compile(r"&(#\d+|[a-z][a-z0-9]+);", re.IGNORECASE)


def unescape_plain_text_entities(context: HookContext) -> None:
    """
    Decode HTML entities that ended up in plain-text translations.

    Applies to text/textarea rows only; markup keeps its entities.
    """
    row = context.row
    if row is None or row.type is RowType.MARKUP:
        return
    if "&" not in row.target or not _ENTITY_RE.search(row.target):
        return
    value = html.unescape(row.target)
    if value:
        row.target = value
