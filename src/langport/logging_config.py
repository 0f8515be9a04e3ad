"""
Logging setup for the langport CLI.

The level comes from the verbosity flags when one is given, otherwise from
the [logging] section of langport.toml. Library modules only create
loggers under the "langport" namespace; handlers are installed here.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

PACKAGE_LOGGER = "langport"


def configure_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    format_str: Optional[str] = None,
) -> None:
    """
    Install a stderr handler (and optionally a file handler) on the root logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level constant.
        log_file: Optional log file; its directory is created when missing.
        format_str: Console format; timestamps are added at DEBUG when omitted.
    """
    if format_str is None:
        format_str = DEBUG_FORMAT if level <= logging.DEBUG else DEFAULT_FORMAT

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_str))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        except OSError as e:
            # console logging stays active
            logging.getLogger(__name__).warning(
                f"Could not set up file logging to {log_file}: {e}"
            )
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DEBUG_FORMAT))
            root_logger.addHandler(file_handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def get_log_level_from_flags(
    quiet: bool = False,
    verbose: bool = False,
    debug: bool = False,
) -> Optional[int]:
    """
    Level selected by the CLI flags, or None when no flag was given.

    --debug beats --quiet, which beats --verbose.
    """
    if debug:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.INFO
    return None


def level_from_name(name: Union[str, int, None]) -> int:
    """Level constant for a config value such as "info" or 20; WARNING when unknown."""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name or "").upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Union[str, Path, None] = None,
    config_level: Union[str, int, None] = None,
) -> int:
    """
    Configure logging for a CLI run and return the level in effect.

    Args:
        verbose: Show INFO messages.
        debug: Show DEBUG messages with timestamps.
        quiet: Show errors only.
        log_file: Log file from the config file, if any.
        config_level: Level name from the config file, used when no flag is set.
    """
    level = get_log_level_from_flags(quiet=quiet, verbose=verbose, debug=debug)
    if level is None:
        level = level_from_name(config_level)
    configure_logging(level=level, log_file=Path(log_file) if log_file else None)
    return level
