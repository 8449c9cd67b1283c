"""
CLI command for adopting unmanaged packages.

Thin wrapper over ``owl.core.use_cases.adopt``.
"""

from __future__ import annotations

import sys

import click

from owl.core.models.adoption import AdoptOutcome
from owl.ui.cli.helpers import get_backend, get_prompter, resolve_paths
from owl.ui.cli.prompts import friendly_path

# (bucket, icon, color, label) in report order
_SUMMARY = (
    (AdoptOutcome.ADOPTED, "✓", "green", "Adopted"),
    (AdoptOutcome.ADOPTED_STATE_ONLY, "ℹ", "blue", "Marked as managed (already in config)"),
    (AdoptOutcome.IGNORED, "!", "yellow", "Ignored"),
    (AdoptOutcome.SKIPPED_ALREADY_MANAGED, "ℹ", "blue", "Already managed"),
    (AdoptOutcome.SKIPPED_NOT_INSTALLED, "!", "yellow", "Not installed (skipped)"),
    (AdoptOutcome.SKIPPED, "ℹ", "blue", "Skipped"),
    (AdoptOutcome.FAILED, "✗", "red", "Failed to adopt"),
)


@click.command()
@click.argument("packages", nargs=-1)
@click.option(
    "--all", "discover_all", is_flag=True,
    help="Discover every unmanaged explicit package, even if names are given.",
)
@click.pass_context
def adopt(ctx: click.Context, packages: tuple[str, ...], discover_all: bool) -> None:
    """Adopt installed packages into the config.

    With no PACKAGES, every explicitly installed package that is not
    managed, ignored or declared is offered.

    Examples:

        owl adopt

        owl adopt htop ripgrep
    """
    from owl.core.use_cases.adopt import run_adopt

    paths = resolve_paths(ctx)
    result = run_adopt(
        packages,
        discover_all,
        paths=paths,
        backend=get_backend(ctx, paths),
        prompter=get_prompter(ctx),
    )

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    if not result.targets:
        click.secho("No unmanaged installed packages available for adoption", fg="yellow")
        return

    if result.aborted:
        click.secho(f"⚠️  {result.aborted}", fg="yellow")
    if result.save_error:
        click.secho(f"❌ Failed to save state: {result.save_error}", fg="red", err=True)

    click.echo()
    if result.config_file:
        click.echo(
            f"{click.style('info:', fg='blue')} Adopted packages were written to "
            f"{friendly_path(result.config_file)}"
        )
    for outcome, icon, color, label in _SUMMARY:
        names = result.packages(outcome)
        if not names:
            continue
        count = f" {len(names)} package(s)" if outcome is AdoptOutcome.ADOPTED else ""
        click.echo(f"{click.style(icon, fg=color)} {label}{count}: {', '.join(names)}")
