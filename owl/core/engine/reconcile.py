"""
Reconciliation engine — compare declared, installed and persisted state.

Three independent views of "what packages exist":

    declared   DeclaredConfig (the .owl files)
    installed  the package manager's answer
    state      PackageState (managed / untracked / hidden)

From them this module derives the adoption candidates and the
install/remove plan. Everything here is pure except the two helpers
that delegate to the backend (categorize, AUR updates).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Set
from dataclasses import dataclass, field

from owl.adapters.base import BackendError, PackageBackend
from owl.core.models.config import DeclaredConfig
from owl.core.models.state import PackageState

logger = logging.getLogger(__name__)


@dataclass
class PackagePlan:
    """What apply has to do to converge the host."""

    to_install: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)
    to_track: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_install or self.to_remove or self.to_track or self.stale)

    def to_dict(self) -> dict:
        return {
            "to_install": self.to_install,
            "to_remove": self.to_remove,
            "to_track": self.to_track,
            "stale": self.stale,
        }


# ═══════════════════════════════════════════════════════════════════
#  Adoption candidates
# ═══════════════════════════════════════════════════════════════════


def normalize_targets(items: Iterable[str]) -> list[str]:
    """Trim, drop empties, and deduplicate preserving first occurrence."""
    seen: set[str] = set()
    targets = []
    for item in items:
        name = item.strip()
        if name and name not in seen:
            seen.add(name)
            targets.append(name)
    return targets


def discover_candidates(
    explicit_installed: Set[str],
    state: PackageState,
    config: DeclaredConfig,
) -> list[str]:
    """Explicitly installed packages nobody has classified yet.

    Excludes managed, untracked and declared names. Sorted ascending so
    prompts come in a stable order.
    """
    return sorted(
        pkg
        for pkg in explicit_installed
        if not state.is_managed(pkg)
        and not state.is_untracked(pkg)
        and not config.declares(pkg)
    )


# ═══════════════════════════════════════════════════════════════════
#  Install / remove plan
# ═══════════════════════════════════════════════════════════════════


def compute_package_plan(
    config: DeclaredConfig,
    installed: Set[str],
    state: PackageState,
) -> PackagePlan:
    """Diff declared config against the installed set and the store.

    - to_install: declared, not installed (declaration order)
    - to_remove:  managed, installed, no longer declared
    - to_track:   declared, installed, not yet managed
    - stale:      managed, neither installed nor declared
    """
    declared = config.packages
    plan = PackagePlan(
        to_install=[p for p in declared if p not in installed],
        to_remove=sorted(
            p for p in state.managed if p in installed and p not in declared
        ),
        to_track=sorted(
            p for p in declared if p in installed and not state.is_managed(p)
        ),
        stale=sorted(
            p for p in state.managed if p not in installed and p not in declared
        ),
    )
    logger.info(
        "Plan: %d to install, %d to remove, %d to track, %d stale",
        len(plan.to_install), len(plan.to_remove), len(plan.to_track), len(plan.stale),
    )
    return plan


def categorize_install_sets(
    backend: PackageBackend,
    to_install: list[str],
) -> tuple[list[str], list[str]]:
    """Split the install set into (repo, AUR) via the backend.

    A failed categorization is reported and yields nothing to install.
    """
    if not to_install:
        return [], []
    try:
        return backend.categorize(to_install)
    except BackendError as e:
        logger.error("Failed to categorize packages: %s", e)
        return [], []


def compute_aur_updates(backend: PackageBackend, dry_run: bool) -> list[str]:
    """AUR packages with pending updates; never queried in dry-run."""
    if dry_run:
        return []
    try:
        return backend.list_aur_updates()
    except BackendError as e:
        logger.error("Failed to check AUR updates: %s", e)
        return []
