"""
Declared configuration — what the user says should exist on this host.

Parsed from ``.owl`` files by ``owl.core.config.loader``. If a package
isn't declared here, owl doesn't install it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ConfigRef(BaseModel):
    """A dotfile binding: ``:config SOURCE -> DESTINATION``."""

    source: str
    destination: str


class PackageEntry(BaseModel):
    """Everything declared about one package."""

    config: list[ConfigRef] = Field(default_factory=list)
    service: str | None = None
    env_vars: dict[str, str] = Field(default_factory=dict)

    def merge(self, other: PackageEntry) -> None:
        """Fold a later declaration of the same package into this one."""
        self.config.extend(other.config)
        if other.service:
            self.service = other.service
        self.env_vars.update(other.env_vars)


class DeclaredConfig(BaseModel):
    """Merged view of every relevant ``.owl`` file."""

    packages: dict[str, PackageEntry] = Field(default_factory=dict)
    env_vars: dict[str, str] = Field(default_factory=dict)
    sources: list[str] = Field(default_factory=list)

    def declares(self, name: str) -> bool:
        """Whether a package is declared."""
        return name in self.packages

    def merge(self, other: DeclaredConfig) -> None:
        """Merge another config into this one (later files win)."""
        for name, entry in other.packages.items():
            if name in self.packages:
                self.packages[name].merge(entry)
            else:
                self.packages[name] = entry.model_copy(deep=True)
        self.env_vars.update(other.env_vars)
        self.sources.extend(other.sources)

    def services(self) -> dict[str, str]:
        """Map of package name to declared service unit."""
        return {
            name: entry.service
            for name, entry in self.packages.items()
            if entry.service
        }

    def all_env_vars(self) -> dict[str, str]:
        """Global env vars overlaid with package-scoped ones."""
        merged = dict(self.env_vars)
        for entry in self.packages.values():
            merged.update(entry.env_vars)
        return merged
