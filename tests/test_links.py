"""
Tests for langport.pathfinder and langport.links.

Tests site path resolution and hyperlink localization in markup.
"""

import pytest

from langport.links import LinkLocalizer
from langport.models import Row, RowType
from langport.pathfinder import PathFinder


class TestPathFinder:
    """Tests for path resolution and localized paths."""

    def test_localized_paths(self, site):
        finder = PathFinder(site.store)
        assert finder.localized_path(site.about, site.default) == "/about/"
        assert finder.localized_path(site.about, site.french) == "/fr/a-propos/"
        assert finder.localized_path(1, site.default) == "/"
        assert finder.localized_path(1, site.french) == "/fr/"
        assert finder.localized_path(9999, site.french) == ""

    def test_resolve_default_language_path(self, site):
        info = PathFinder(site.store).resolve_path("/about/")
        assert info.ok
        assert info.item_id == site.about
        assert info.language_name == "default"

    def test_resolve_prefixed_path(self, site):
        info = PathFinder(site.store).resolve_path("/fr/a-propos/")
        assert info.ok
        assert info.item_id == site.about
        assert info.language_name == "fr"

    def test_localized_name_falls_back_to_default(self, site):
        info = PathFinder(site.store).resolve_path("/fr/about/")
        assert info.item_id == site.about
        assert info.language_name == "fr"

    def test_unknown_segment_is_404(self, site):
        """Test that leftover segments are rejected when the template disallows them."""
        info = PathFinder(site.store).resolve_path("/about/page2")
        assert not info.ok
        assert info.url_segments == ["page2"]

    def test_url_segments_allowed_by_template(self, site):
        store = site.store
        listing = store.create_template("listing", ["title"], url_segments=True)
        news = store.add_item("news", listing)
        info = PathFinder(store).resolve_path("/news/page2/")
        assert info.ok
        assert info.item_id == news
        assert info.url_segment_str == "page2"

    def test_unpublished_is_404(self, site):
        basic = site.store.get_item(site.about).template_id
        site.store.add_item("draft", basic, status=0)
        assert not PathFinder(site.store).resolve_path("/draft/").ok


class TestLinkLocalizer:
    """Tests for rewriting internal links to the target language."""

    def test_rewrites_source_link(self, site):
        markup, count = LinkLocalizer(site.store).localize(
            '<p><a href="/contact/">Contact</a></p>', site.default, site.french
        )
        assert count == 1
        assert markup == '<p><a href="/fr/contact-fr/">Contact</a></p>'

    def test_keeps_query_and_fragment(self, site):
        markup, count = LinkLocalizer(site.store).localize(
            '<a class="x" href="/contact/?ref=1#form">c</a>', site.default, site.french
        )
        assert count == 1
        assert 'href="/fr/contact-fr/?ref=1#form"' in markup

    def test_link_without_trailing_slash(self, site):
        """Test that the localized path keeps its own trailing slash."""
        markup, count = LinkLocalizer(site.store).localize(
            '<a href="/contact">c</a>', site.default, site.french
        )
        assert count == 1
        assert 'href="/fr/contact-fr/"' in markup

    def test_counted_replacement_of_repeated_link(self, site):
        markup, count = LinkLocalizer(site.store).localize(
            '<a href="/contact/">a</a> <a href="/contact/">b</a>', site.default, site.french
        )
        assert count == 2
        assert markup.count('"/fr/contact-fr/"') == 2

    def test_target_language_link_untouched(self, site):
        value = '<a href="/fr/contact-fr/">c</a>'
        markup, count = LinkLocalizer(site.store).localize(value, site.default, site.french)
        assert count == 0
        assert markup == value

    @pytest.mark.parametrize("value", [
        '<a href="/nowhere/">x</a>',
        '<a href="https://example.com/contact/">x</a>',
        "<p>No links</p>",
        "",
    ])
    def test_unresolvable_links_untouched(self, site, value):
        markup, count = LinkLocalizer(site.store).localize(value, site.default, site.french)
        assert count == 0
        assert markup == value

    def test_subdirectory_install(self, site_factory):
        """Test that the install root URL is kept on links that carried it."""
        site = site_factory("sub.db", root_url="/sub/")
        links = LinkLocalizer(site.store)

        markup, count = links.localize('<a href="/sub/contact/">c</a>', site.default, site.french)
        assert count == 1
        assert markup == '<a href="/sub/fr/contact-fr/">c</a>'

        markup, count = links.localize('<a href="/contact/">c</a>', site.default, site.french)
        assert count == 1
        assert markup == '<a href="/fr/contact-fr/">c</a>'

    def test_localize_row_only_touches_markup(self, site):
        links = LinkLocalizer(site.store)
        row = Row("2", "summary", RowType.TEXTAREA, "", '<a href="/contact/">c</a>')
        assert links.localize_row(row, site.default, site.french) == 0
        assert row.target == '<a href="/contact/">c</a>'

        row.type = RowType.MARKUP
        assert links.localize_row(row, site.default, site.french) == 1
        assert row.target == '<a href="/fr/contact-fr/">c</a>'
