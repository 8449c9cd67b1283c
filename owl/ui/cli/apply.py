"""
CLI command for converging the host on the declared config.

Thin wrapper over ``owl.core.use_cases.apply``.
"""

from __future__ import annotations

import json
import sys

import click

from owl.ui.cli.helpers import (
    echo_receipt,
    get_backend,
    get_dotfiles,
    get_prompter,
    get_system,
    resolve_paths,
)

_STEP_TITLES = {
    "removals": "Package cleanup",
    "repo_install": "Repository packages",
    "aur": "AUR packages",
    "repo_update": "System update",
    "dotfiles": "Dotfiles",
    "system": "Services & environment",
}

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "partial": ("⚠️ ", "yellow"),
    "failed": ("✗", "red"),
    "dry_run": ("⊘", "blue"),
    "cancelled": ("⊘", "yellow"),
    "skipped": ("⊘", "yellow"),
}


@click.command()
@click.option("--dry-run", is_flag=True, help="Show what would change without changing anything.")
@click.option(
    "--non-interactive", "-y", "non_interactive", is_flag=True,
    help="Never prompt (AUR operations proceed, removals are skipped).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def apply(ctx: click.Context, dry_run: bool, non_interactive: bool, as_json: bool) -> None:
    """Install, remove and update packages, then sync dotfiles and services.

    Set OWL_PM_PASSTHROUGH=1 to let the package manager drive its own
    prompts (ignored with --non-interactive).

    Examples:

        owl apply --dry-run

        owl apply -y
    """
    from owl.core.use_cases.apply import run_apply

    paths = resolve_paths(ctx)
    result = run_apply(
        paths=paths,
        backend=get_backend(ctx, paths),
        prompter=get_prompter(ctx),
        dotfiles=get_dotfiles(ctx, paths),
        system=get_system(ctx, paths),
        dry_run=dry_run,
        non_interactive=non_interactive or as_json,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    verbose = ctx.obj.get("verbose", False)
    mode_label = "[dry-run] " if dry_run else ""
    click.secho(f"\n🦉 {mode_label}apply — {paths.owl_dir}", fg="cyan", bold=True)

    for step in result.steps:
        if step.status == "noop":
            continue
        icon, color = _STATUS_STYLE.get(step.status, ("•", "white"))
        title = _STEP_TITLES.get(step.name, step.name)
        click.secho(f"   {icon} {title}", fg=color, bold=True, nl=False)
        click.echo(f" — {step.message}" if step.message else "")
        if step.status == "dry_run":
            for package in step.packages:
                click.echo(f"     • {package}")
        for receipt in step.receipts:
            echo_receipt(receipt, verbose=verbose)

    if result.save_error:
        click.secho(f"   ❌ Failed to update package state: {result.save_error}", fg="red")

    click.echo()
    if result.failed_steps:
        names = ", ".join(_STEP_TITLES.get(s.name, s.name) for s in result.failed_steps)
        click.secho(f"   Result: failed steps — {names}", fg="red", bold=True)
    else:
        click.secho("   Result: ok", fg="green", bold=True)
    click.echo()
    sys.exit(result.exit_code)
