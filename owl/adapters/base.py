"""
Adapter base — the contracts between owl's core and the outside world.

The core only talks to the package manager, the filesystem and the
init system through these interfaces, never directly. That keeps the
reconciliation engine and the apply orchestrator testable with
``MockBackend``.

Query methods raise ``BackendError`` on failure: an empty answer must
never stand in for a failed query. Mutating methods NEVER raise:
failures are captured in the returned Receipt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from owl.core.models.action import Receipt
from owl.core.models.config import DeclaredConfig


class BackendError(Exception):
    """Raised when a package-manager query fails."""


class PackageBackend(ABC):
    """Abstract package manager (system prober + installer).

    To create a new backend:
        1. Subclass PackageBackend
        2. Implement the queries and the mutating operations
        3. Return it from ``owl.adapters.build_backend``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g., 'paru', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool exists. Fast, never raises."""

    # ── Queries (raise BackendError) ─────────────────────────────

    @abstractmethod
    def list_installed(self) -> set[str]:
        """Every installed package."""

    @abstractmethod
    def list_explicitly_installed(self) -> set[str]:
        """Installed packages the user asked for (not pulled in as deps)."""

    @abstractmethod
    def categorize(self, packages: Sequence[str]) -> tuple[list[str], list[str]]:
        """Split packages into (repository, AUR), preserving input order."""

    @abstractmethod
    def list_aur_updates(self) -> list[str]:
        """Installed AUR packages with a newer version available."""

    # ── Mutations (return Receipt) ───────────────────────────────

    @abstractmethod
    def install_repo(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        """Install packages from the official repositories."""

    @abstractmethod
    def install_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        """Build and install packages from the AUR."""

    @abstractmethod
    def update_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        """Upgrade the given AUR packages."""

    @abstractmethod
    def update_repo(self, *, passthrough: bool = False) -> Receipt:
        """Full upgrade of repository packages."""

    @abstractmethod
    def remove(self, packages: Sequence[str]) -> Receipt:
        """Remove packages (with their unneeded dependencies) as one batch."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class DotfileSync(ABC):
    """Synchronizes ``:config`` bindings onto the filesystem."""

    @abstractmethod
    def sync(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        """Bring every declared dotfile up to date; one receipt per binding."""


class SystemActivator(ABC):
    """Activates declared services and environment variables."""

    @abstractmethod
    def activate(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        """Enable declared services and write the environment file."""
