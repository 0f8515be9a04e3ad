"""
Translation bundle validation and file IO.

A bundle is the JSON document an export produces and an import consumes:

    {
      "source_language": "default (English)",
      "target_language": "fr (French)",
      "version": 2,
      "exported": "2024-05-01 10:00:00",
      "fields": {"title": "PageTitleLanguage", ...},
      "items": [{"page": 1, "field": "title", "type": "text",
                 "source": "Home", "target": ""}, ...]
    }

Validation runs the JSON Schema first, then the checks that need the content
store: version, source/target language and field resolution.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from . import row_path
from .errors import ConfigurationError, ValidationError
from .store import ContentStore

logger = logging.getLogger(__name__)

# Bundles older than this are rejected on import
BUNDLE_VERSION = 2


@dataclass
class ValidationIssue:
    """A single validation issue."""

    path: str
    message: str
    severity: str = "error"  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity}] {self.path}: {self.message}"


@dataclass
class ValidationReport:
    """Result of validating a bundle."""

    file_path: Optional[Path] = None
    is_valid: bool = True
    issues: List[ValidationIssue] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    valid_fields: int = 0

    def add_issue(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)
        if issue.severity == "error":
            self.error_count += 1
            self.is_valid = False
        else:
            self.warning_count += 1

    def error(self, path: str, message: str) -> None:
        self.add_issue(ValidationIssue(path=path, message=message, severity="error"))

    def warning(self, path: str, message: str) -> None:
        self.add_issue(ValidationIssue(path=path, message=message, severity="warning"))

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    def format_text(self) -> str:
        """Format the report as human-readable text."""
        lines = []
        if self.file_path:
            lines.append(f"Validation report for: {self.file_path}")
        if self.is_valid and not self.issues:
            lines.append("No issues found")
        else:
            status = "INVALID" if not self.is_valid else "WARNINGS"
            lines.append(f"Status: {status}")
            lines.append(f"Errors: {self.error_count}, Warnings: {self.warning_count}")
            for issue in self.issues:
                lines.append(f"  {issue}")
        return "\n".join(lines)

    def raise_for_errors(self) -> None:
        """
        Raises:
            ValidationError: If the report holds any error.
        """
        if self.is_valid:
            return
        messages = [issue.message for issue in self.errors]
        raise ValidationError(messages[0] if messages else "Invalid bundle", issues=messages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": str(self.file_path) if self.file_path else None,
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "valid_fields": self.valid_fields,
            "issues": [
                {"path": i.path, "message": i.message, "severity": i.severity}
                for i in self.issues
            ],
        }


def get_schema_path() -> Path:
    return Path(__file__).parent / "schemas" / "bundle.schema.json"


def load_schema() -> Dict[str, Any]:
    """
    Load the bundle JSON schema.

    Raises:
        FileNotFoundError: If the schema file is missing.
    """
    schema_path = get_schema_path()
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")
    with open(schema_path, encoding="utf-8") as f:
        return json.load(f)


def _format_json_path(path: List[Any]) -> str:
    """Format a JSON path as "$.items[3].type"."""
    parts = ["$"]
    for component in path:
        if isinstance(component, int):
            parts.append(f"[{component}]")
        else:
            parts.append(f".{component}")
    return "".join(parts)


def validate_bundle(
    data: Any,
    store: ContentStore,
    required_version: int = BUNDLE_VERSION,
    file_path: Optional[Path] = None,
) -> ValidationReport:
    """
    Validate a bundle against the schema and the content store.

    Args:
        data: Decoded bundle.
        store: Content store the bundle would be imported into.
        required_version: Minimum accepted bundle version.
        file_path: Optional path to the source file (for reporting).

    Returns:
        ValidationReport; a bundle is importable only when is_valid is True.
    """
    report = ValidationReport(file_path=file_path)

    validator = Draft7Validator(load_schema())
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        report.error(_format_json_path(list(error.absolute_path)), error.message)
    if not report.is_valid:
        return report

    if int(data["version"]) < required_version:
        report.error(
            "$.version",
            f"Import file has an older version (v{data['version']}) "
            f"than the required version (v{required_version})",
        )
        return report

    for key in ("source_language", "target_language"):
        value = data[key]
        if store.resolve_language(value) is None:
            report.error(f"$.{key}", f"Cannot find {key}: {value}")
    if not report.is_valid:
        return report

    for name in data["fields"]:
        if store.get_field(row_path.field_name(name)) is not None:
            report.valid_fields += 1
        else:
            report.warning(f"$.fields.{name}", f"Field not found '{name}'")

    if report.valid_fields == 0:
        report.error("$.fields", "None of the bundle's fields exist in the content store")

    logger.debug(
        f"Validated bundle: {report.error_count} error(s), {report.warning_count} warning(s)"
    )
    return report


def load_bundle(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a bundle file.

    Raises:
        ConfigurationError: If the file does not exist.
        ValidationError: If the file is not a JSON object.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Bundle file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid JSON in {path}: expected an object")
    return data


def save_bundle(data: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write a bundle as indented UTF-8 JSON. Returns the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")
    logger.info(f"Wrote {len(data.get('items', []))} row(s) to {path}")
    return path
