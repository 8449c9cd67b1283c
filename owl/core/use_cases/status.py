"""
Status use case — summarize declared, installed and classified packages.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from owl.adapters.base import BackendError, PackageBackend
from owl.core.config.loader import ConfigError, load_declared_config
from owl.core.config.settings import OwlPaths
from owl.core.engine.reconcile import compute_package_plan, discover_candidates
from owl.core.persistence.state_file import StateError, load_state


@dataclass
class StatusResult:
    """Aggregated package status."""

    owl_dir: str = ""
    config_files: list[str] = field(default_factory=list)
    declared_count: int = 0
    installed_count: int = 0
    explicit_count: int = 0
    managed_count: int = 0
    untracked_count: int = 0
    hidden_count: int = 0
    candidates: list[str] = field(default_factory=list)
    to_install: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "owl_dir": self.owl_dir,
            "config_files": self.config_files,
            "packages": {
                "declared": self.declared_count,
                "installed": self.installed_count,
                "explicit": self.explicit_count,
                "managed": self.managed_count,
                "untracked": self.untracked_count,
                "hidden": self.hidden_count,
            },
            "candidates": self.candidates,
            "to_install": self.to_install,
            "to_remove": self.to_remove,
        }


def get_status(
    paths: OwlPaths,
    backend: PackageBackend,
    hostname: str | None = None,
) -> StatusResult:
    """Collect counts and the pending plan without changing anything."""
    result = StatusResult(owl_dir=str(paths.owl_dir))

    try:
        state = load_state(paths.state_file)
        config = load_declared_config(paths.owl_dir, hostname)
        installed = backend.list_installed()
        explicit = backend.list_explicitly_installed()
    except (StateError, ConfigError, BackendError) as e:
        result.error = str(e)
        return result

    plan = compute_package_plan(config, installed, state)

    result.config_files = config.sources
    result.declared_count = len(config.packages)
    result.installed_count = len(installed)
    result.explicit_count = len(explicit)
    result.managed_count = len(state.managed)
    result.untracked_count = len(state.untracked)
    result.hidden_count = len(state.hidden)
    result.candidates = [
        p for p in discover_candidates(explicit, state, config) if not state.is_hidden(p)
    ]
    result.to_install = plan.to_install
    result.to_remove = plan.to_remove
    return result
