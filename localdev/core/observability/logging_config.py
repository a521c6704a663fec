"""
Logging configuration — one setup call per process, made by the CLI.

Modules only ever do ``logger = logging.getLogger(__name__)``; the
handlers installed here decide what reaches the terminal.

Level precedence:
    --debug / --verbose / --quiet  >  LOCALDEV_LOG_LEVEL  >  WARNING

LOCALDEV_LOG_FILE adds a file handler (always full detail) whose level
can be set separately with LOCALDEV_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

# Console: plain messages unless the user asked for more
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(levelname)s: %(message)s", None)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers that chatter below WARNING and carry nothing we need
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: dict[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get("LOCALDEV_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install console (stderr) and optional file handlers on the root logger.

    Args:
        level: Console level name.
        log_file: Optional log file path.
        log_file_level: Level for the file handler (default: ``level``).
    """
    console_level = _parse_level(level)
    fmt, datefmt = _CONSOLE_FORMATS.get(console_level, _CONSOLE_DEFAULT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown names fall back to WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
