"""Centralized logging configuration for savesync.

Provides coloured console output via *colorama* and supports ``--verbose``
/ ``--quiet`` flags through log-level selection.

Usage::

    from savesync.utils.logger import get_logger

    log = get_logger(__name__)
    log.info("Uploaded %d file(s)", count)
    log.debug("PUT %s", key)  # only shown with --verbose
"""
import logging
import sys

from colorama import Fore, Style

__all__ = ["get_logger", "setup_logging", "parse_level"]

_LEVEL_COLOURS = {
    logging.DEBUG: Fore.WHITE,
    logging.INFO: Fore.CYAN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}

_LEVEL_NAMES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ColouredFormatter(logging.Formatter):
    """Formatter that prepends coloured level tags to log messages."""

    def format(self, record: logging.LogRecord) -> str:
        colour = _LEVEL_COLOURS.get(record.levelno, "")
        msg = super().format(record)
        return f"{colour}[{record.levelname}]{Style.RESET_ALL} {msg}"


_ROOT_LOGGER_NAME = "savesync"


def parse_level(level: str) -> int:
    """Map a configured level name onto a :mod:`logging` level.

    Unknown or empty names fall back to ``INFO``.
    """
    return _LEVEL_NAMES.get((level or "").strip().lower(), logging.INFO)


def setup_logging(verbose: bool = False, quiet: bool = False, level: str = "") -> None:
    """Configure the root *savesync* logger.

    Call once during CLI bootstrap.

    Args:
        verbose: If *True*, set level to ``DEBUG``.
        quiet: If *True*, set level to ``WARNING`` (overrides *verbose*).
        level: Level name from configuration, used when neither flag is set.
    """
    if quiet:
        resolved = logging.WARNING
    elif verbose:
        resolved = logging.DEBUG
    else:
        resolved = parse_level(level)

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(resolved)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColouredFormatter("%(message)s"))
        root.addHandler(handler)
    for handler in root.handlers:
        handler.setLevel(resolved)


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the *savesync* namespace.

    Library code never configures handlers itself; without
    :func:`setup_logging` records propagate to whatever the host
    application configured.

    Args:
        name: Typically ``__name__`` of the calling module.
    """
    if not name.startswith(_ROOT_LOGGER_NAME):
        name = f"{_ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
