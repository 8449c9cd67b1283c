"""
Click prompter — terminal implementation of the core's Prompter.

EOF or Ctrl-C on stdin surfaces as ``click.Abort``, and a broken stdin
as ``OSError``. Either is a failed input channel, not an answer, and
becomes ``PromptError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import click

from owl.core.interaction import Prompter, PromptError
from owl.core.models.adoption import PackageAction


def friendly_path(path: Path, home: Path | None = None) -> str:
    """Show paths under $HOME as ``~/...``."""
    home = home or Path.home()
    try:
        return "~/" + str(path.relative_to(home))
    except ValueError:
        return str(path)


class ClickPrompter(Prompter):
    """Ask on the terminal with click."""

    def __init__(self, home: Path | None = None):
        self._home = home

    def _read(self, text: str) -> str:
        try:
            return click.prompt(text, default="", show_default=False, prompt_suffix=": ")
        except click.Abort as e:
            raise PromptError("input stream closed") from e
        except OSError as e:
            raise PromptError(f"cannot read input: {e}") from e

    def notify(self, message: str) -> None:
        click.echo(f"{click.style('info:', fg='blue')} {message}")

    def choose_action(self, package: str) -> PackageAction:
        while True:
            answer = self._read(f"Package '{package}' -> [a]dopt / [i]gnore / [s]kip / [q]uit")
            action = PackageAction.parse(answer)
            if action is not None:
                return action
            click.secho("Invalid choice, try again", fg="red")

    def choose_config_file(self, files: Sequence[Path]) -> Path | None:
        click.echo()
        click.secho("Select config file to write adopted packages:", bold=True)
        for idx, path in enumerate(files):
            click.echo(f"  [{idx}] {click.style(friendly_path(path, self._home), fg='cyan')}")

        while True:
            answer = self._read(f"Config index (0-{len(files) - 1}, or 'c' to cancel)").strip()
            if answer.lower() in ("c", "cancel"):
                return None
            if answer.isdigit() and int(answer) < len(files):
                return files[int(answer)]
            click.secho("Invalid selection, try again", fg="red")

    def confirm(self, message: str, packages: Sequence[str]) -> bool:
        click.echo()
        for package in packages:
            click.echo(f"   • {package}")
        try:
            return click.confirm(message, default=False)
        except click.Abort:
            return False
