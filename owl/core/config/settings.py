"""
Settings — where owl keeps its files and which package manager it drives.

Resolution order:
    --owl-dir option  >  OWL_DIR env var  >  ~/.owl

Inside the owl directory, an optional ``settings.yml`` tunes the rest::

    package_manager: paru
    fallback_package_manager: pacman
    command_timeout: 3600
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from owl.core.config.loader import ConfigError, main_config_path

logger = logging.getLogger(__name__)

DEFAULT_OWL_DIR = ".owl"
SETTINGS_FILE = "settings.yml"
PASSTHROUGH_ENV = "OWL_PM_PASSTHROUGH"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class OwlSettings(BaseModel):
    """Tunables read from settings.yml."""

    model_config = ConfigDict(extra="forbid")

    package_manager: str = "paru"
    fallback_package_manager: str = "pacman"
    command_timeout: int = Field(default=3600, gt=0)

    state_file: str = ".state/packages.json"
    audit_file: str = ".state/audit.ndjson"
    env_file: str = ".state/env.sh"
    dotfiles_dir: str = "dotfiles"


@dataclass
class OwlPaths:
    """Resolved filesystem locations for one invocation."""

    owl_dir: Path
    settings: OwlSettings

    def _resolve(self, relative: str) -> Path:
        path = Path(relative).expanduser()
        return path if path.is_absolute() else self.owl_dir / path

    @property
    def main_config(self) -> Path:
        return main_config_path(self.owl_dir)

    @property
    def state_file(self) -> Path:
        return self._resolve(self.settings.state_file)

    @property
    def audit_file(self) -> Path:
        return self._resolve(self.settings.audit_file)

    @property
    def env_file(self) -> Path:
        return self._resolve(self.settings.env_file)

    @property
    def dotfiles_dir(self) -> Path:
        return self._resolve(self.settings.dotfiles_dir)


def resolve_owl_dir(
    explicit: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Pick the owl directory from the CLI option, OWL_DIR, or ~/.owl."""
    if explicit is not None:
        return explicit.expanduser()
    env = os.environ if environ is None else environ
    if env.get("OWL_DIR"):
        return Path(env["OWL_DIR"]).expanduser()
    return Path.home() / DEFAULT_OWL_DIR


def load_settings(owl_dir: Path) -> OwlSettings:
    """Load settings.yml from the owl directory (defaults if absent).

    Raises:
        ConfigError: If the file is unreadable, not YAML, or invalid.
    """
    path = owl_dir / SETTINGS_FILE
    if not path.is_file():
        return OwlSettings()

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return OwlSettings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = OwlSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.debug("Loaded settings from %s", path)
    return settings


def load_paths(
    explicit: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> OwlPaths:
    """Resolve the owl directory and its settings in one go."""
    owl_dir = resolve_owl_dir(explicit, environ)
    return OwlPaths(owl_dir=owl_dir, settings=load_settings(owl_dir))


def passthrough_enabled(
    non_interactive: bool,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Whether OWL_PM_PASSTHROUGH asks for the backend's own UI.

    Never honored in non-interactive runs.
    """
    if non_interactive:
        return False
    env = os.environ if environ is None else environ
    return env.get(PASSTHROUGH_ENV, "").strip().lower() in _TRUTHY
