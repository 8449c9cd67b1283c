"""
PackageState — the persisted package classification.

Three sets of package names:

    managed    packages owl is responsible for
    untracked  packages the user chose to ignore
    hidden     packages hidden from listings (orthogonal to the other two)

A name is never in both ``managed`` and ``untracked``: adding it to one
evicts it from the other, on every code path. Serialized to
``.state/packages.json`` as sorted lists.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_serializer

SCHEMA_VERSION = 1


class PackageState(BaseModel):
    """Classification of installed packages — serialized to .state/packages.json."""

    schema_version: int = SCHEMA_VERSION

    managed: set[str] = Field(default_factory=set)
    untracked: set[str] = Field(default_factory=set)
    hidden: set[str] = Field(default_factory=set)

    @field_serializer("managed", "untracked", "hidden")
    def _sorted(self, names: set[str]) -> list[str]:
        return sorted(names)

    # ── Queries ──────────────────────────────────────────────────

    def is_managed(self, name: str) -> bool:
        return name in self.managed

    def is_untracked(self, name: str) -> bool:
        return name in self.untracked

    def is_hidden(self, name: str) -> bool:
        return name in self.hidden

    # ── Mutators ─────────────────────────────────────────────────
    # Each returns True if any set changed.

    def add_managed(self, name: str) -> bool:
        """Mark a package managed, evicting it from ``untracked``."""
        changed = name not in self.managed or name in self.untracked
        self.untracked.discard(name)
        self.managed.add(name)
        return changed

    def remove_managed(self, name: str) -> bool:
        if name not in self.managed:
            return False
        self.managed.discard(name)
        return True

    def add_untracked(self, name: str) -> bool:
        """Mark a package untracked (ignored), evicting it from ``managed``."""
        changed = name not in self.untracked or name in self.managed
        self.managed.discard(name)
        self.untracked.add(name)
        return changed

    def remove_untracked(self, name: str) -> bool:
        if name not in self.untracked:
            return False
        self.untracked.discard(name)
        return True

    def add_hidden(self, name: str) -> bool:
        if name in self.hidden:
            return False
        self.hidden.add(name)
        return True

    def remove_hidden(self, name: str) -> bool:
        if name not in self.hidden:
            return False
        self.hidden.discard(name)
        return True
