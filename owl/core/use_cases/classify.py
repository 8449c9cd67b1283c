"""
Classify use case — hand-edit the persisted classification.

    hide     add to ``hidden`` (out of status listings)
    unhide   remove from ``hidden``
    forget   drop from both ``managed`` and ``untracked``; discovery
             offers the package again
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from owl.core.config.settings import OwlPaths
from owl.core.engine.reconcile import normalize_targets
from owl.core.models.state import PackageState
from owl.core.persistence.audit import AuditEntry, AuditLedger
from owl.core.persistence.state_file import StateError, load_state, save_state

logger = logging.getLogger(__name__)

OPERATIONS = ("hide", "unhide", "forget")


@dataclass
class ClassifyResult:
    operation: str = ""
    changed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error else 0


def _forget(state: PackageState, name: str) -> bool:
    removed_managed = state.remove_managed(name)
    removed_untracked = state.remove_untracked(name)
    return removed_managed or removed_untracked


_MUTATORS = {
    "hide": PackageState.add_hidden,
    "unhide": PackageState.remove_hidden,
    "forget": _forget,
}


def classify(
    operation: str,
    names: Iterable[str],
    *,
    paths: OwlPaths,
    audit: AuditLedger | None = None,
) -> ClassifyResult:
    """Apply one classification edit to a list of packages, saving once."""
    result = ClassifyResult(operation=operation)
    mutate = _MUTATORS.get(operation)
    if mutate is None:
        result.error = f"Unknown operation '{operation}'. Valid: {', '.join(OPERATIONS)}"
        return result

    try:
        state = load_state(paths.state_file)
    except StateError as e:
        result.error = f"Failed to load state: {e}"
        return result

    for name in normalize_targets(names):
        (result.changed if mutate(state, name) else result.unchanged).append(name)

    if not result.changed:
        return result

    try:
        save_state(state, paths.state_file)
    except StateError as e:
        result.error = f"Failed to save state: {e}"
        return result

    ledger = audit or AuditLedger(paths.audit_file)
    ledger.append(AuditEntry(command=operation, packages={operation: result.changed}))
    logger.info("%s: %s", operation, ", ".join(result.changed))
    return result
