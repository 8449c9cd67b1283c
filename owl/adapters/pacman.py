"""
Pacman backend — drives pacman for repository packages and an AUR
helper (paru by default) for everything else.

Queries are tried against the AUR helper first and fall back to plain
pacman when the helper can't be spawned, so a host without paru can
still be probed.

    list_installed            pacman -Qq
    list_explicitly_installed pacman -Qeq
    categorize                pacman -Slq  (names in a sync repo → repo)
    list_aur_updates          paru -Qua
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from owl.adapters.base import BackendError, PackageBackend
from owl.adapters.shell.command import CommandRunner
from owl.core.models.action import Receipt

logger = logging.getLogger(__name__)


def _lines(output: str) -> list[str]:
    """Non-empty stripped lines of a command's stdout."""
    return [line.strip() for line in output.splitlines() if line.strip()]


class PacmanBackend(PackageBackend):
    """pacman + AUR helper backend.

    Args:
        aur_helper: AUR-capable wrapper (paru, yay). Used first for queries.
        pacman: Plain pacman executable; query fallback and repo operations.
        runner: Command runner (injected in tests).
    """

    def __init__(
        self,
        aur_helper: str = "paru",
        pacman: str = "pacman",
        runner: CommandRunner | None = None,
    ):
        self._aur_helper = aur_helper
        self._pacman = pacman
        self._runner = runner or CommandRunner(name=aur_helper)

    @property
    def name(self) -> str:
        return self._aur_helper

    def is_available(self) -> bool:
        return self._runner.is_available(self._pacman)

    # ── Helpers ──────────────────────────────────────────────────

    def _query_candidates(self, *args: str) -> list[list[str]]:
        """Prioritized command lines for a read-only query."""
        candidates = [[self._aur_helper, *args]]
        if self._pacman != self._aur_helper:
            candidates.append([self._pacman, *args])
        return candidates

    def _query(self, operation: str, *args: str) -> list[str]:
        receipt = self._runner.run(self._query_candidates(*args), operation=operation)
        if receipt.failed:
            raise BackendError(f"{operation} failed: {receipt.error}")
        return _lines(receipt.output)

    def _sudo(self, cmd: list[str]) -> list[str]:
        if os.geteuid() == 0:
            return cmd
        return ["sudo", *cmd]

    @staticmethod
    def _confirm_flag(passthrough: bool) -> list[str]:
        # In passthrough mode the tool asks its own questions
        return [] if passthrough else ["--noconfirm"]

    # ── Queries ──────────────────────────────────────────────────

    def list_installed(self) -> set[str]:
        return set(self._query("list_installed", "-Qq"))

    def list_explicitly_installed(self) -> set[str]:
        return set(self._query("list_explicitly_installed", "-Qeq"))

    def categorize(self, packages: Sequence[str]) -> tuple[list[str], list[str]]:
        if not packages:
            return [], []
        receipt = self._runner.run([[self._pacman, "-Slq"]], operation="categorize")
        if receipt.failed:
            raise BackendError(f"categorize failed: {receipt.error}")
        in_repos = set(_lines(receipt.output))
        repo = [p for p in packages if p in in_repos]
        aur = [p for p in packages if p not in in_repos]
        logger.debug("Categorized %d repo / %d AUR package(s)", len(repo), len(aur))
        return repo, aur

    def list_aur_updates(self) -> list[str]:
        if self._aur_helper == self._pacman:
            return []
        receipt = self._runner.run([[self._aur_helper, "-Qua"]], operation="list_aur_updates")
        # paru exits 1 with no output when nothing is outdated
        if receipt.failed and (receipt.output or receipt.metadata.get("return_code") != 1):
            raise BackendError(f"list_aur_updates failed: {receipt.error}")
        # Lines look like "name 1.0-1 -> 1.1-1"
        return [line.split()[0] for line in _lines(receipt.output)]

    # ── Mutations ────────────────────────────────────────────────

    def install_repo(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        cmd = self._sudo([self._pacman, "-S", "--needed", *self._confirm_flag(passthrough), *packages])
        return self._runner.run(
            [cmd], operation="install_repo", interactive=passthrough, packages=packages,
        )

    def install_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        # AUR helpers escalate on their own and refuse to run as root
        cmd = [self._aur_helper, "-S", "--needed", *self._confirm_flag(passthrough), *packages]
        return self._runner.run(
            [cmd], operation="install_aur", interactive=passthrough, packages=packages,
        )

    def update_aur(self, packages: Sequence[str], *, passthrough: bool = False) -> Receipt:
        cmd = [self._aur_helper, "-S", *self._confirm_flag(passthrough), *packages]
        return self._runner.run(
            [cmd], operation="update_aur", interactive=passthrough, packages=packages,
        )

    def update_repo(self, *, passthrough: bool = False) -> Receipt:
        cmd = self._sudo([self._pacman, "-Syu", *self._confirm_flag(passthrough)])
        return self._runner.run([cmd], operation="update_repo", interactive=passthrough)

    def remove(self, packages: Sequence[str]) -> Receipt:
        cmd = self._sudo([self._pacman, "-Rns", "--noconfirm", *packages])
        return self._runner.run([cmd], operation="remove", packages=packages)
