"""
Round-trip tests: export, import the unchanged bundle, export again.

Re-exporting after importing an unchanged bundle must give the same source
and target values for every row, and a second import must change nothing.
"""

from langport.exporter import FieldExporter
from langport.importer import FieldImporter
from langport.models import ExportOptions, ImportOptions, SourceToTarget


def export(site, item_ids, source_to_target=SourceToTarget.OFF):
    exporter = FieldExporter(site.store, ExportOptions(source_to_target=source_to_target))
    return exporter.export_items(item_ids, site.default, site.french)


def values(bundle):
    return [(r["page"], r["field"], r["type"], r["source"], r["target"]) for r in bundle["items"]]


class TestRoundTrip:
    """Tests for export/import/export idempotence."""

    def test_unchanged_bundle_changes_nothing(self, site):
        before = site.snapshot()
        bundle = export(site, [site.about, site.contact])

        result = FieldImporter(site.store).import_bundle(bundle, ImportOptions(overwrite=True))

        assert result.imported == 0
        assert site.snapshot() == before
        assert values(export(site, [site.about, site.contact])) == values(bundle)

    def test_copied_sources_round_trip(self, site):
        """Test that every port writes back exactly what it exported."""
        bundle = export(site, [site.about], SourceToTarget.EMPTY)
        options = ImportOptions(overwrite=True, update_links=False)

        first = FieldImporter(site.store).import_bundle(bundle, options)
        assert first.imported == 6

        assert values(export(site, [site.about])) == values(bundle)

        after_first = site.snapshot()
        second = FieldImporter(site.store).import_bundle(bundle, options)
        assert second.imported == 0
        assert site.snapshot() == after_first

    def test_stored_encodings_after_round_trip(self, site):
        bundle = export(site, [site.about], SourceToTarget.EMPTY)
        FieldImporter(site.store).import_bundle(bundle, ImportOptions(update_links=False))

        assert site.cell(site.about, 1, "label") == "1:Color\r5:Couleur"
        assert site.cell(site.about, 1, "notes") == "1:Bright red\r5:Bright red"
        assert site.cell(site.about, 2, "label") == "Size\r5:Size"
        assert site.scalar("blurbs", site.about) == (
            "intro:Hello\rintro___5:Bonjour\routro:Bye\routro___5:Bye"
        )
        assert site.description(site.about, "door.jpg") == '{"0":"desc-en","5":"desc-fr"}'
        assert site.description(site.about, "plain.jpg") == (
            '{"0":"A plain one","5":"A plain one"}'
        )

    def test_nested_round_trip(self, nested_site):
        site = nested_site
        bundle = export(site, [site.landing], SourceToTarget.EMPTY)
        options = ImportOptions(overwrite=True, update_links=False)

        result = FieldImporter(site.store).import_bundle(bundle, options)

        assert result.not_found == 0
        assert result.item_ids == {site.landing, site.block_a, site.meta_item, site.about}
        assert values(export(site, [site.landing])) == values(bundle)
        assert site.scalar("title", site.block_a, "data5") == "Block A"
        assert site.scalar("summary", site.meta_item, "data5") == "Meta summary"

    def test_limited_export_imports(self, site):
        """Test that a bundle narrowed by limit_fields still validates for import."""
        exporter = FieldExporter(
            site.store,
            ExportOptions(source_to_target=SourceToTarget.EMPTY, limit_fields=["title"]),
        )
        bundle = exporter.export_items([site.about], site.default, site.french)
        assert bundle["fields"] == {"title": "PageTitleLanguage"}

        result = FieldImporter(site.store).import_bundle(bundle)

        assert result.imported == 1
        assert site.scalar("title", site.about, "data5") == "About"
