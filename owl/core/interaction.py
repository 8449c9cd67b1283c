"""
Interaction — the questions the core asks the user.

The adoption workflow and the apply orchestrator are channel-independent:
they ask through a ``Prompter`` and never read stdin themselves. The CLI
provides a click-based implementation; tests script the answers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from owl.core.models.adoption import PackageAction


class PromptError(Exception):
    """Raised when the input channel fails (EOF, closed stream, I/O error).

    An invalid answer is not a PromptError: prompters re-ask until they
    get a valid one.
    """


class Prompter(ABC):
    """Source of user decisions."""

    @abstractmethod
    def choose_action(self, package: str) -> PackageAction:
        """Ask what to do with an unmanaged package.

        Raises:
            PromptError: If the answer can't be read.
        """

    @abstractmethod
    def choose_config_file(self, files: Sequence[Path]) -> Path | None:
        """Ask which config file receives adopted packages.

        Returns:
            The chosen path, or None if the user cancelled.

        Raises:
            PromptError: If the answer can't be read.
        """

    @abstractmethod
    def confirm(self, message: str, packages: Sequence[str]) -> bool:
        """Yes/no confirmation for a batch of packages. Unreadable → False."""

    def notify(self, message: str) -> None:
        """Show an informational line mid-workflow. Silent by default."""
