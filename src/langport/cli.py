"""
Command-line interface for langport.

Provides the `langport` command with the following subcommands:
- init: Create the content store database
- languages: List the languages of the content store
- export: Export items to a translation bundle
- import: Import a translation bundle
- validate: Validate a bundle against the content store
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .bundle import load_bundle, validate_bundle
from .config import Config, ConfigError, load_config
from .errors import (
    EXIT_CONFIG_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    LangPortError,
    LanguageNotFoundError,
)
from .exporter import FieldExporter
from .importer import FieldImporter
from .logging_config import setup_logging
from .models import SourceToTarget
from .schema import init_db
from .store import ContentStore

# Set up module logger
logger = logging.getLogger(__name__)


def _split_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated option value; None when the option is absent."""
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _db_path(args: argparse.Namespace) -> Path:
    config: Config = args._config
    return Path(args.db) if args.db else config.db_path


def _open_store(args: argparse.Namespace) -> ContentStore:
    return ContentStore(_db_path(args), root_url=args._config.site.root_url)


def init_command(args: argparse.Namespace) -> int:
    """
    Execute the init command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code.
    """
    result_path = init_db(
        _db_path(args),
        force=args.force,
        default_language=args.default_language,
        default_title=args.default_title,
    )
    print(f"✅ Database initialized: {result_path}")
    return EXIT_SUCCESS


def languages_command(args: argparse.Namespace) -> int:
    """Execute the languages command."""
    with _open_store(args) as store:
        for language in store.get_languages():
            marker = " (default)" if language.is_default else ""
            print(f"{language.id}\t{language.label}{marker}")
    return EXIT_SUCCESS


def export_command(args: argparse.Namespace) -> int:
    """
    Execute the export command.

    Writes the bundle to --output, or to stdout when no output file is given.
    """
    config: Config = args._config
    options = config.export_options(
        omit_blank=False if args.include_blank else None,
        omit_translated=True if args.omit_translated else None,
        source_to_target=args.source_to_target,
        compact=True if args.compact else None,
        limit_fields=_split_list(args.limit_fields),
    )

    item_ids = [int(i) for i in _split_list(args.items) or []]

    with _open_store(args) as store:
        source = store.resolve_language(args.source)
        if source is None:
            raise LanguageNotFoundError(args.source, "source language")
        target = store.resolve_language(args.target)
        if target is None:
            raise LanguageNotFoundError(args.target, "target language")

        exporter = FieldExporter(store, options)
        if args.output:
            data = exporter.export_to_file(item_ids, source, target, Path(args.output))
            print(f"✅ Exported {len(data['items'])} row(s) to {args.output}")
        else:
            data = exporter.export_items(item_ids, source, target)
            json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
            sys.stdout.write("\n")
    return EXIT_SUCCESS


def import_command(args: argparse.Namespace) -> int:
    """
    Execute the import command.

    Returns:
        EXIT_SUCCESS when the bundle was processed, even if rows were skipped.
    """
    config: Config = args._config
    options = config.import_options(
        overwrite=True if args.overwrite else None,
        confirm_source=True if args.confirm_source else None,
        update_links=False if args.no_update_links else None,
        dry_run=args.dry_run,
        verbose=args.verbose or args.debug,
        fields=_split_list(args.fields),
        template_ids=[int(t) for t in _split_list(args.templates) or []],
    )

    data = load_bundle(args.file)
    with _open_store(args) as store:
        result = FieldImporter(store).import_bundle(data, options)

    for notice in result.notices:
        if args.verbose or args.debug or args.dry_run:
            print(f"   {notice}")
    icon = "🧪" if result.dry_run else "📥"
    print(f"\n{icon} Import Results:")
    for line in result.summary_lines():
        print(f"   {line}")
    return EXIT_SUCCESS


def validate_command(args: argparse.Namespace) -> int:
    """Execute the validate command."""
    path = Path(args.file)
    data = load_bundle(path)
    with _open_store(args) as store:
        report = validate_bundle(data, store, file_path=path)
    print(report.format_text())
    return EXIT_SUCCESS if report.is_valid else EXIT_VALIDATION_ERROR


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="langport",
        description="Export and import translations of a multi-language content tree.",
        epilog="Example: langport export --source default --target fr --items 1,12 -o fr.json",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"langport {__version__}"
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (INFO level logging, per-row notes on import)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level logging)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        dest="config_file",
        help="Path to config file (default: langport.toml)"
    )
    parser.add_argument(
        "--db",
        type=str,
        help="Path to the content store database (default: data/site.db)"
    )

    # Subcommands
    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands"
    )

    # Init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize the content store",
        description="Create the content store database and apply the schema."
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Recreate the database even if it exists"
    )
    init_parser.add_argument(
        "--default-language",
        default="default",
        help="Name of the default language (default: default)"
    )
    init_parser.add_argument(
        "--default-title",
        default="Default",
        help="Title of the default language (default: Default)"
    )
    init_parser.set_defaults(func=init_command)

    # Languages command
    languages_parser = subparsers.add_parser(
        "languages",
        help="List languages",
        description="List the languages of the content store."
    )
    languages_parser.set_defaults(func=languages_command)

    # Export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export items to a translation bundle",
        description="Export translatable field values of items to a JSON bundle."
    )
    export_parser.add_argument(
        "--source", "-s",
        required=True,
        help="Source language name"
    )
    export_parser.add_argument(
        "--target", "-t",
        required=True,
        help="Target language name"
    )
    export_parser.add_argument(
        "--items", "-i",
        required=True,
        help="Comma-separated item ids to export"
    )
    export_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Bundle file to write (default: stdout)"
    )
    export_parser.add_argument(
        "--limit-fields",
        type=str,
        help="Comma-separated field names to export (default: all)"
    )
    export_parser.add_argument(
        "--include-blank",
        action="store_true",
        help="Also export rows whose source value is empty"
    )
    export_parser.add_argument(
        "--omit-translated",
        action="store_true",
        help="Skip rows that already have a target value"
    )
    export_parser.add_argument(
        "--source-to-target",
        choices=[m.value for m in SourceToTarget],
        default=None,
        help="Copy source values into targets: only empty ones, or all (force)"
    )
    export_parser.add_argument(
        "--compact",
        action="store_true",
        help="Do not prefix rows of container fields with their parent chain"
    )
    export_parser.set_defaults(func=export_command)

    # Import command
    import_parser = subparsers.add_parser(
        "import",
        help="Import a translation bundle",
        description="Apply the target values of a JSON bundle to the content store."
    )
    import_parser.add_argument(
        "file",
        help="Bundle file to import"
    )
    import_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace target values that are already present"
    )
    import_parser.add_argument(
        "--confirm-source",
        action="store_true",
        help="Skip rows whose source differs from the stored source value"
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be imported without writing"
    )
    import_parser.add_argument(
        "--fields",
        type=str,
        help="Comma-separated field names or paths to import (default: all)"
    )
    import_parser.add_argument(
        "--templates",
        type=str,
        help="Comma-separated template ids; only items using them are imported"
    )
    import_parser.add_argument(
        "--no-update-links",
        action="store_true",
        help="Do not localize links in markup values"
    )
    import_parser.set_defaults(func=import_command)

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a translation bundle",
        description="Check a bundle against the schema and the content store."
    )
    validate_parser.add_argument(
        "file",
        help="Bundle file to validate"
    )
    validate_parser.set_defaults(func=validate_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug, quiet=args.quiet)

    # Load config file if specified or found
    config_path = Path(args.config_file) if args.config_file else None
    try:
        config = load_config(config_path)
        args._config = config  # Attach to args for commands to use
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        print(f"❌ Config error: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(
        verbose=args.verbose,
        debug=args.debug,
        quiet=args.quiet,
        log_file=config.logging.log_file,
        config_level=config.logging.level,
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_SUCCESS

    try:
        return args.func(args)
    except LangPortError as e:
        logger.error(e.message)
        print(f"❌ Error: {e.message}")
        for issue in getattr(e, "issues", [])[1:]:
            print(f"   {issue}")
        return e.exit_code


def main_cli() -> None:
    """
    CLI entry point for setuptools console_scripts.

    Calls main() and exits with the returned code.
    """
    sys.exit(main())


if __name__ == "__main__":
    main_cli()
