"""
Logging setup for the owl CLI.

``owl.main`` calls ``setup_logging`` once per process; modules only ever
do ``logger = logging.getLogger(__name__)``.

Console level, highest precedence first:
    --debug  >  --verbose  >  --quiet  >  OWL_LOG_LEVEL  >  WARNING

A second, independent sink can be added with OWL_LOG_FILE (level from
OWL_LOG_FILE_LEVEL, else the console level). The file is appended to so
several runs can be compared.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

LEVEL_ENV = "OWL_LOG_LEVEL"
FILE_ENV = "OWL_LOG_FILE"
FILE_LEVEL_ENV = "OWL_LOG_FILE_LEVEL"

# At WARNING and above the console carries user-facing reports
# ("Failed to adopt htop: ..."), so no decoration.
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s %(name)s: %(message)s", "%H:%M:%S"),
}
_PLAIN_FORMAT = ("%(message)s", None)

_FILE_FORMAT = ("%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%Y-%m-%d %H:%M:%S")


def resolve_console_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags and OWL_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(LEVEL_ENV) or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler (stderr) and the optional file handler.

    Replaces whatever handlers the root logger had, so calling it twice
    doesn't duplicate output.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _PLAIN_FORMAT
    for threshold in sorted(_CONSOLE_FORMATS):
        if console_level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(*_FILE_FORMAT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    # A closed stderr (piped into head, test runners) must not crash a run
    logging.raiseExceptions = False


def setup_from_env(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> None:
    """``setup_logging`` driven by CLI flags and the OWL_LOG_* variables."""
    env = os.environ if environ is None else environ
    setup_logging(
        level=resolve_console_level(debug, verbose, quiet, env),
        log_file=env.get(FILE_ENV) or None,
        log_file_level=env.get(FILE_LEVEL_ENV) or None,
    )


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown names fall back to WARNING."""
    numeric = logging.getLevelName(level.strip().upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
