"""
Tests for langport.hooks module.

Tests hook registration, execution order and error handling.
"""

import pytest

from langport.hooks import (
    HookContext,
    HookManager,
    HookType,
    unescape_plain_text_entities,
)
from langport.models import Row, RowType


class TestHookManager:
    """Tests for HookManager."""

    def test_register_and_list(self):
        manager = HookManager()

        def first(ctx):
            pass

        manager.register(HookType.ROW_READY, first)
        manager.register("post_import", first, name="report")
        assert manager.list_hooks()["row_ready"] == ["first"]
        assert manager.list_hooks()["post_import"] == ["report"]
        assert len(manager) == 2

    def test_invalid_hook_type(self):
        with pytest.raises(ValueError, match="Invalid hook type"):
            HookManager().register("pre_build", lambda ctx: None)

    def test_priority_order(self):
        manager = HookManager()
        calls = []
        manager.register(HookType.ROW_READY, lambda ctx: calls.append("late"), name="late", priority=200)
        manager.register(HookType.ROW_READY, lambda ctx: calls.append("early"), name="early", priority=1)
        manager.execute(HookType.ROW_READY, HookContext())
        assert calls == ["early", "late"]

    def test_unregister(self):
        manager = HookManager()
        manager.register(HookType.ROW_READY, lambda ctx: None, name="a")
        manager.register(HookType.ROW_READY, lambda ctx: None, name="a")
        assert manager.unregister(HookType.ROW_READY, "a") == 2
        assert len(manager) == 0

    def test_skip_stops_later_callbacks(self):
        manager = HookManager()
        calls = []
        manager.register(HookType.ROW_READY, lambda ctx: ctx.skip("no"), name="skipper", priority=1)
        manager.register(HookType.ROW_READY, lambda ctx: calls.append("after"), name="after")
        context = manager.execute(HookType.ROW_READY, HookContext())
        assert context.skipped
        assert context.skip_reason == "no"
        assert calls == []

    def test_error_is_recorded(self):
        manager = HookManager()

        def broken(ctx):
            raise RuntimeError("boom")

        manager.register(HookType.POST_EXPORT, broken)
        context = manager.execute(HookType.POST_EXPORT, HookContext())
        assert context.errors == ["Hook 'broken' raised an error: boom"]

    def test_abort_on_error(self):
        manager = HookManager()

        def broken(ctx):
            raise RuntimeError("boom")

        manager.register(HookType.POST_EXPORT, broken, abort_on_error=True)
        with pytest.raises(RuntimeError):
            manager.execute(HookType.POST_EXPORT, HookContext())


class TestHookContext:
    """Tests for HookContext defaults."""

    def test_defaults_are_per_instance(self):
        first, second = HookContext(), HookContext()
        first.data["items"] = []
        first.add_error("boom")
        assert first.field is None
        assert second.data == {}
        assert second.errors == []


class TestUnescapeEntities:
    """Tests for the builtin entity unescape hook."""

    @pytest.mark.parametrize("target,expected", [
        ("Caf&eacute;", "Café"),
        ("Tom &amp; Jerry", "Tom & Jerry"),
        ("&#233;t&#233;", "été"),
        ("R&D", "R&D"),
        ("plain", "plain"),
    ])
    def test_plain_text(self, target, expected):
        row = Row("1", "title", RowType.TEXT, "", target)
        unescape_plain_text_entities(HookContext(row=row))
        assert row.target == expected

    def test_markup_untouched(self):
        row = Row("1", "body", RowType.MARKUP, "", "<p>&amp;</p>")
        unescape_plain_text_entities(HookContext(row=row))
        assert row.target == "<p>&amp;</p>"

    def test_without_row(self):
        unescape_plain_text_entities(HookContext())
