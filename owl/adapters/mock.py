"""
Mock backend — in-memory package manager for tests.

Simulates an installed package set without touching the system.
Every call is recorded in ``call_log``; queries and operations can be
configured to fail.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from owl.adapters.base import BackendError, PackageBackend
from owl.core.models.action import Receipt


class MockBackend(PackageBackend):
    """Universal mock backend for testing.

    Args:
        installed: Packages currently installed.
        explicit: Explicitly installed subset (defaults to ``installed``).
        repo_packages: Names available from the official repositories;
            anything else categorizes as AUR.
        aur_updates: Names reported by ``list_aur_updates``.
    """

    def __init__(
        self,
        installed: Iterable[str] = (),
        explicit: Iterable[str] | None = None,
        repo_packages: Iterable[str] = (),
        aur_updates: Iterable[str] = (),
        backend_name: str = "mock",
        available: bool = True,
    ):
        self.installed = set(installed)
        self.explicit = set(self.installed if explicit is None else explicit)
        self.repo_packages = set(repo_packages)
        self.aur_updates = list(aur_updates)
        self._name = backend_name
        self._available = available
        self._failures: dict[str, str] = {}
        self._call_log: list[tuple[str, tuple[str, ...], bool]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, tuple[str, ...], bool]]:
        """(operation, packages, passthrough) for every call received."""
        return self._call_log

    @property
    def operations(self) -> list[str]:
        """Operation names in call order."""
        return [op for op, _, _ in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, operation: str, error: str = "Mock failure") -> None:
        """Configure a query (raises) or operation (failed receipt) to fail."""
        self._failures[operation] = error

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()

    # ── Queries ──────────────────────────────────────────────────

    def _record(self, operation: str, packages: Sequence[str] = (), passthrough: bool = False) -> None:
        self._call_log.append((operation, tuple(packages), passthrough))

    def _check_query(self, operation: str) -> None:
        if operation in self._failures:
            raise BackendError(self._failures[operation])

    def list_installed(self) -> set[str]:
        self._record("list_installed")
        self._check_query("list_installed")
        return set(self.installed)

    def list_explicitly_installed(self) -> set[str]:
        self._record("list_explicitly_installed")
        self._check_query("list_explicitly_installed")
        return set(self.explicit)

    def categorize(self, packages: Sequence[str]) -> tuple[list[str], list[str]]:
        self._record("categorize", packages)
        self._check_query("categorize")
        repo = [p for p in packages if p in self.repo_packages]
        aur = [p for p in packages if p not in self.repo_packages]
        return repo, aur

    def list_aur_updates(self) -> list[str]:
        self._record("list_aur_updates")
        self._check_query("list_aur_updates")
        return list(self.aur_updates)

    # ── Mutations ────────────────────────────────────────────────

    def _mutate(
        self,
        operation: str,
        packages: Sequence[str],
        passthrough: bool,
        install: bool | None,
    ) -> Receipt:
        self._record(operation, packages, passthrough)
        if operation in self._failures:
            return Receipt.failure(
                backend=self._name,
                operation=operation,
                error=self._failures[operation],
                packages=list(packages),
            )
        if install is True:
            self.installed.update(packages)
            self.explicit.update(packages)
        elif install is False:
            self.installed.difference_update(packages)
            self.explicit.difference_update(packages)
        return Receipt.success(
            backend=self._name,
            operation=operation,
            output=f"[mock] {operation} executed",
            packages=list(packages),
            metadata={"mock": True, "passthrough": passthrough},
        )

    def install_repo(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        return self._mutate("install_repo", packages, passthrough, install=True)

    def install_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        return self._mutate("install_aur", packages, passthrough, install=True)

    def update_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        return self._mutate("update_aur", packages, passthrough, install=None)

    def update_repo(self, *, passthrough: bool = False) -> Receipt:
        return self._mutate("update_repo", (), passthrough, install=None)

    def remove(self, packages: Sequence[str]) -> Receipt:
        return self._mutate("remove", packages, False, install=False)
