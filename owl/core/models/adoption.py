"""
Adoption types — the per-package decisions and their outcomes.
"""

from __future__ import annotations

from enum import Enum


class PackageAction(str, Enum):
    """What the user chose to do with one adoption candidate."""

    ADOPT = "adopt"
    IGNORE = "ignore"
    SKIP = "skip"
    QUIT = "quit"

    @classmethod
    def parse(cls, raw: str) -> PackageAction | None:
        """Parse a prompt answer (``a``/``adopt``, ...); None if unrecognized."""
        value = raw.strip().lower()
        for action in cls:
            if value in (action.value, action.value[0]):
                return action
        return None


class AddResult(str, Enum):
    """Result of writing a package into a config file."""

    ADDED = "added"
    ALREADY_PRESENT = "already_present"


class AdoptOutcome(str, Enum):
    """Reporting bucket for one adoption target."""

    ADOPTED = "adopted"
    ADOPTED_STATE_ONLY = "adopted_state_only"
    IGNORED = "ignored"
    SKIPPED = "skipped"
    SKIPPED_NOT_INSTALLED = "skipped_not_installed"
    SKIPPED_ALREADY_MANAGED = "skipped_already_managed"
    FAILED = "failed"
