"""
Configuration loader — reads ``.owl`` files into a DeclaredConfig.

File format (line oriented, surrounding whitespace ignored)::

    # comment
    @packages            (or @pkgs) — following lines are bare package names
    htop
    ripgrep

    @package neovim      — single-package block, followed by directives
    :config nvim -> ~/.config/nvim
    :service some-unit.service
    :env EDITOR=nvim

    @env LANG=en_US.UTF-8

Relevant files for a host are ``main.owl``, ``groups/*.owl`` and
``hosts/<hostname>.owl`` under the owl directory, merged in that order.
"""

from __future__ import annotations

import logging
import re
import socket
from pathlib import Path

from owl.core.models.config import ConfigRef, DeclaredConfig, PackageEntry

logger = logging.getLogger(__name__)

MAIN_CONFIG_FILE = "main.owl"
HOSTS_DIR = "hosts"
GROUPS_DIR = "groups"
CONFIG_SUFFIX = ".owl"

PACKAGE_SECTION_HEADERS = ("@packages", "@pkgs")

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConfigError(Exception):
    """Raised when owl configuration is invalid or unreadable."""


# ═══════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════


def parse_config(text: str, source: str = "<string>") -> DeclaredConfig:
    """Parse the contents of one ``.owl`` file.

    Args:
        text: File contents.
        source: Name used in error messages and recorded in ``sources``.

    Returns:
        DeclaredConfig for this file alone.

    Raises:
        ConfigError: On any syntax error, with file and line number.
    """
    config = DeclaredConfig(sources=[source])
    mode: str | None = None        # "list" inside @packages, "package" inside @package
    current: PackageEntry | None = None

    def fail(lineno: int, message: str) -> ConfigError:
        return ConfigError(f"{source}:{lineno}: {message}")

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("@"):
            keyword, arg = _split_keyword(line)
            current = None

            if keyword in PACKAGE_SECTION_HEADERS:
                if arg:
                    raise fail(lineno, f"{keyword} takes no arguments")
                mode = "list"
            elif keyword == "@package":
                if not arg or len(arg.split()) != 1:
                    raise fail(lineno, "@package expects exactly one package name")
                current = config.packages.setdefault(arg, PackageEntry())
                mode = "package"
            elif keyword == "@env":
                key, value = _parse_env(arg, lambda msg: fail(lineno, msg))
                config.env_vars[key] = value
                mode = None
            else:
                raise fail(lineno, f"Unknown directive '{keyword}'")
            continue

        if line.startswith(":"):
            if mode != "package" or current is None:
                raise fail(lineno, f"'{line.split()[0]}' outside of a @package block")
            _apply_directive(current, line, lambda msg: fail(lineno, msg))
            continue

        if mode == "list":
            if len(line.split()) != 1:
                raise fail(lineno, f"Invalid package name '{line}'")
            config.packages.setdefault(line, PackageEntry())
        elif mode == "package":
            raise fail(lineno, f"Unexpected line in @package block: '{line}'")
        else:
            raise fail(lineno, f"Package name '{line}' outside of a @packages section")

    return config


def _apply_directive(entry: PackageEntry, line: str, fail) -> None:
    """Apply one ``:directive`` line to a package entry."""
    keyword, arg = _split_keyword(line)

    if keyword == ":config":
        source, sep, destination = arg.partition("->")
        source, destination = source.strip(), destination.strip()
        if not sep or not source or not destination:
            raise fail(":config expects 'SOURCE -> DESTINATION'")
        entry.config.append(ConfigRef(source=source, destination=destination))
    elif keyword == ":service":
        if not arg or len(arg.split()) != 1:
            raise fail(":service expects exactly one unit name")
        entry.service = arg
    elif keyword == ":env":
        key, value = _parse_env(arg, fail)
        entry.env_vars[key] = value
    else:
        raise fail(f"Unknown package directive '{keyword}'")


def _split_keyword(line: str) -> tuple[str, str]:
    parts = line.split(None, 1)
    return parts[0], parts[1].strip() if len(parts) > 1 else ""


def _parse_env(arg: str, fail) -> tuple[str, str]:
    key, sep, value = arg.partition("=")
    key = key.strip()
    if not sep or not _ENV_KEY_RE.match(key):
        raise fail(f"Expected KEY=VALUE, got '{arg}'")
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return key, value


# ═══════════════════════════════════════════════════════════════════
#  Discovery & loading
# ═══════════════════════════════════════════════════════════════════


def main_config_path(owl_dir: Path) -> Path:
    """Path of the main config file (may not exist yet)."""
    return owl_dir / MAIN_CONFIG_FILE


def current_hostname() -> str:
    """Short hostname of this machine."""
    return socket.gethostname().split(".")[0]


def relevant_config_files(owl_dir: Path, hostname: str | None = None) -> list[Path]:
    """Config files that apply to this host, in merge order.

    Only existing files are returned.
    """
    host = hostname or current_hostname()
    candidates = [main_config_path(owl_dir)]
    candidates.extend(sorted((owl_dir / GROUPS_DIR).glob(f"*{CONFIG_SUFFIX}")))
    candidates.append(owl_dir / HOSTS_DIR / f"{host}{CONFIG_SUFFIX}")
    return [p for p in candidates if p.is_file()]


def all_config_files(owl_dir: Path) -> list[Path]:
    """Every existing config file under the owl directory (any host)."""
    files = []
    main = main_config_path(owl_dir)
    if main.is_file():
        files.append(main)
    for sub in (HOSTS_DIR, GROUPS_DIR):
        files.extend(p for p in sorted((owl_dir / sub).glob(f"*{CONFIG_SUFFIX}")) if p.is_file())
    return files


def load_config_file(path: Path) -> DeclaredConfig:
    """Read and parse a single ``.owl`` file.

    Raises:
        ConfigError: If the file can't be read or parsed.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    return parse_config(raw, source=str(path))


def load_declared_config(owl_dir: Path, hostname: str | None = None) -> DeclaredConfig:
    """Load and merge every relevant config file for this host.

    Returns an empty DeclaredConfig when no config file exists.

    Raises:
        ConfigError: If any relevant file is unreadable or invalid.
    """
    merged = DeclaredConfig()
    for path in relevant_config_files(owl_dir, hostname):
        logger.debug("Loading config from %s", path)
        merged.merge(load_config_file(path))

    logger.info(
        "Loaded %d declared package(s) from %d file(s)",
        len(merged.packages), len(merged.sources),
    )
    return merged
