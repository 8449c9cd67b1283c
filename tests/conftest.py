"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import pytest

from owl.adapters.base import DotfileSync, SystemActivator
from owl.core.config.settings import OwlPaths, OwlSettings
from owl.core.interaction import Prompter, PromptError
from owl.core.models.action import Receipt
from owl.core.models.adoption import PackageAction
from owl.core.models.config import DeclaredConfig


class ScriptedPrompter(Prompter):
    """Prompter that replays canned answers.

    ``actions`` are consumed one per ``choose_action`` call; running out
    raises PromptError, like a closed stdin. ``config_choice`` is an
    index into the offered files, or None to cancel.
    """

    def __init__(
        self,
        actions: Iterable[PackageAction] = (),
        config_choice: int | None = 0,
        confirm: bool = True,
    ):
        self.actions = list(actions)
        self.config_choice = config_choice
        self.confirm_answer = confirm
        self.asked: list[str] = []
        self.offered_files: list[list[Path]] = []
        self.confirmations: list[tuple[str, list[str]]] = []
        self.messages: list[str] = []

    def choose_action(self, package: str) -> PackageAction:
        self.asked.append(package)
        if not self.actions:
            raise PromptError("no more scripted answers")
        return self.actions.pop(0)

    def choose_config_file(self, files: Sequence[Path]) -> Path | None:
        self.offered_files.append(list(files))
        if self.config_choice is None:
            return None
        return files[self.config_choice]

    def confirm(self, message: str, packages: Sequence[str]) -> bool:
        self.confirmations.append((message, list(packages)))
        return self.confirm_answer

    def notify(self, message: str) -> None:
        self.messages.append(message)


class RecordingDotfiles(DotfileSync):
    """Dotfile collaborator that records calls and returns no receipts."""

    def __init__(self, receipts: list[Receipt] | None = None):
        self.calls: list[bool] = []
        self._receipts = receipts or []

    def sync(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        self.calls.append(dry_run)
        return list(self._receipts)


class RecordingSystem(SystemActivator):
    """System collaborator that records calls and returns no receipts."""

    def __init__(self, receipts: list[Receipt] | None = None):
        self.calls: list[bool] = []
        self._receipts = receipts or []

    def activate(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        self.calls.append(dry_run)
        return list(self._receipts)


@pytest.fixture
def owl_dir(tmp_path: Path) -> Path:
    """Return an empty owl directory."""
    path = tmp_path / "owl"
    path.mkdir()
    return path


@pytest.fixture
def paths(owl_dir: Path) -> OwlPaths:
    """Resolved paths with default settings."""
    return OwlPaths(owl_dir=owl_dir, settings=OwlSettings())


@pytest.fixture
def write_config(owl_dir: Path):
    """Write a .owl file relative to the owl directory."""

    def _write(relative: str, content: str) -> Path:
        path = owl_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
