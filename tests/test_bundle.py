"""
Tests for langport.bundle.

Tests bundle validation and file IO.
"""

import json

import pytest

from langport.bundle import (
    BUNDLE_VERSION,
    ValidationReport,
    get_schema_path,
    load_bundle,
    load_schema,
    save_bundle,
    validate_bundle,
)
from langport.errors import ConfigurationError, ValidationError


@pytest.fixture
def bundle():
    return {
        "source_language": "default (English)",
        "target_language": "fr",
        "version": BUNDLE_VERSION,
        "fields": {"title": "PageTitleLanguage", "specs.label": "Table"},
        "items": [
            {"page": 2, "field": "title", "type": "text", "source": "About", "target": ""},
            {"page": "2 > 3", "field": "specs[1].label", "type": "text",
             "source": "Color", "target": "Couleur"},
        ],
    }


class TestSchema:
    """Tests for the bundle JSON schema file."""

    def test_schema_file_exists(self):
        assert get_schema_path().exists()

    def test_schema_loads(self):
        schema = load_schema()
        assert schema["type"] == "object"
        assert "items" in schema["required"]


class TestValidateBundle:
    """Tests for validate_bundle."""

    def test_valid_bundle(self, site, bundle):
        report = validate_bundle(bundle, site.store)
        assert report.is_valid
        assert report.valid_fields == 2
        assert report.issues == []

    def test_schema_errors_have_paths(self, site, bundle):
        bundle["items"][1]["type"] = "html"
        del bundle["items"][0]["target"]
        report = validate_bundle(bundle, site.store)
        assert not report.is_valid
        paths = [issue.path for issue in report.issues]
        assert "$.items[0]" in paths
        assert "$.items[1].type" in paths

    def test_missing_keys(self, site):
        report = validate_bundle({"version": 2}, site.store)
        assert report.error_count == 4

    def test_older_version(self, site, bundle):
        bundle["version"] = 1
        report = validate_bundle(bundle, site.store)
        assert report.errors[0].message == (
            "Import file has an older version (v1) than the required version (v2)"
        )

    def test_newer_version_accepted(self, site, bundle):
        bundle["version"] = BUNDLE_VERSION + 1
        assert validate_bundle(bundle, site.store).is_valid

    def test_unknown_languages(self, site, bundle):
        bundle["source_language"] = "xx"
        bundle["target_language"] = "yy (Why)"
        report = validate_bundle(bundle, site.store)
        assert [i.message for i in report.errors] == [
            "Cannot find source_language: xx",
            "Cannot find target_language: yy (Why)",
        ]

    def test_unknown_field_is_warning(self, site, bundle):
        bundle["fields"]["nope"] = "Text"
        report = validate_bundle(bundle, site.store)
        assert report.is_valid
        assert report.warning_count == 1
        assert report.issues[0].path == "$.fields.nope"

    def test_no_known_fields_is_error(self, site, bundle):
        bundle["fields"] = {"nope": "Text", "blocks > other": "Text"}
        report = validate_bundle(bundle, site.store)
        assert not report.is_valid
        assert report.warning_count == 2
        assert report.error_count == 1

    def test_nested_field_names(self, nested_site, bundle):
        bundle["fields"] = {"blocks > title": "PageTitleLanguage"}
        assert validate_bundle(bundle, nested_site.store).valid_fields == 1


class TestValidationReport:
    """Tests for ValidationReport."""

    def test_raise_for_errors(self):
        report = ValidationReport()
        report.warning("$.fields.x", "Field not found 'x'")
        report.raise_for_errors()

        report.error("$.version", "too old")
        report.error("$.items", "empty")
        with pytest.raises(ValidationError) as exc_info:
            report.raise_for_errors()
        assert exc_info.value.message == "too old"
        assert exc_info.value.issues == ["too old", "empty"]

    def test_format_text(self, tmp_path):
        report = ValidationReport(file_path=tmp_path / "fr.json")
        assert report.format_text().endswith("No issues found")
        report.error("$.version", "too old")
        text = report.format_text()
        assert "Status: INVALID" in text
        assert "[error] $.version: too old" in text

    def test_to_dict(self):
        report = ValidationReport()
        report.warning("$.fields.x", "missing")
        data = report.to_dict()
        assert data["is_valid"] is True
        assert data["warning_count"] == 1
        assert data["issues"][0]["severity"] == "warning"


class TestBundleFiles:
    """Tests for reading and writing bundle files."""

    def test_save_and_load(self, tmp_path, bundle):
        bundle["items"][0]["target"] = "À propos"
        path = save_bundle(bundle, tmp_path / "out" / "fr.json")
        text = path.read_text(encoding="utf-8")
        assert "À propos" in text
        assert load_bundle(path) == bundle

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_bundle(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValidationError, match="Invalid JSON"):
            load_bundle(path)

    def test_load_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ValidationError):
            load_bundle(path)
