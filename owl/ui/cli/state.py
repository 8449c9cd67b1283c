"""
CLI commands for editing the package classification by hand.

Thin wrappers over ``owl.core.use_cases.classify``.
"""

from __future__ import annotations

import sys

import click

from owl.ui.cli.helpers import resolve_paths


@click.group()
def state() -> None:
    """State — hide, unhide or forget packages."""


def _run(ctx: click.Context, operation: str, packages: tuple[str, ...]) -> None:
    from owl.core.use_cases.classify import classify

    result = classify(operation, packages, paths=resolve_paths(ctx))
    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    if result.changed:
        click.secho(f"✅ {operation}: {', '.join(result.changed)}", fg="green")
    if result.unchanged:
        click.echo(f"   unchanged: {', '.join(result.unchanged)}")


@state.command()
@click.argument("packages", nargs=-1, required=True)
@click.pass_context
def hide(ctx: click.Context, packages: tuple[str, ...]) -> None:
    """Hide packages from status listings."""
    _run(ctx, "hide", packages)


@state.command()
@click.argument("packages", nargs=-1, required=True)
@click.pass_context
def unhide(ctx: click.Context, packages: tuple[str, ...]) -> None:
    """Show previously hidden packages again."""
    _run(ctx, "unhide", packages)


@state.command()
@click.argument("packages", nargs=-1, required=True)
@click.pass_context
def forget(ctx: click.Context, packages: tuple[str, ...]) -> None:
    """Drop packages from managed and ignored, so adopt offers them again."""
    _run(ctx, "forget", packages)
