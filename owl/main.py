"""
owl — CLI entrypoint.

Usage:
    owl --help
    owl status
    owl adopt [PACKAGE...] [--all]
    owl apply [--dry-run] [-y]
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from owl import __version__
from owl.core.observability.logging_config import setup_from_env


@click.group()
@click.version_option(version=__version__, prog_name="owl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--owl-dir",
    "owl_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Config directory (default: $OWL_DIR or ~/.owl).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    owl_dir: Path | None,
) -> None:
    """owl — declarative package management for your host."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["owl_dir"] = owl_dir

    setup_from_env(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show declared, installed and classified package counts."""
    from owl.core.use_cases.status import get_status
    from owl.ui.cli.helpers import get_backend, resolve_paths

    paths = resolve_paths(ctx)
    result = get_status(paths, get_backend(ctx, paths))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n🦉 {result.owl_dir}", fg="cyan", bold=True)
    if result.config_files:
        for source in result.config_files:
            click.echo(f"   📄 {source}")
    else:
        click.secho("   ⚠️  No config files found", fg="yellow")
    click.echo()

    click.secho("   Packages:", fg="white", bold=True)
    click.echo(f"     • declared   {result.declared_count}")
    click.echo(f"     • installed  {result.installed_count} ({result.explicit_count} explicit)")
    click.echo(f"     • managed    {result.managed_count}")
    click.echo(f"     • ignored    {result.untracked_count}")
    click.echo(f"     • hidden     {result.hidden_count}")

    if result.to_install or result.to_remove:
        click.echo()
        click.secho("   Pending apply:", fg="white", bold=True)
        if result.to_install:
            click.echo(f"     + {', '.join(result.to_install)}")
        if result.to_remove:
            click.echo(f"     - {', '.join(result.to_remove)}")

    if result.candidates:
        click.echo()
        click.secho(
            f"   {len(result.candidates)} unmanaged package(s) — run 'owl adopt'",
            fg="yellow",
        )
    click.echo()


@cli.command()
@click.option("-n", "count", default=20, show_default=True, help="Number of entries.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent state-changing operations."""
    from owl.core.persistence.audit import AuditLedger
    from owl.ui.cli.helpers import resolve_paths

    paths = resolve_paths(ctx)
    entries = AuditLedger(paths.audit_file).tail(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No operations recorded yet")
        return

    for entry in entries:
        status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(
            entry.status, "white"
        )
        click.echo(f"{entry.timestamp}  {entry.command:<8} ", nl=False)
        click.secho(entry.status, fg=status_color)
        for bucket, names in entry.packages.items():
            click.echo(f"     {bucket}: {', '.join(names)}")
        for error in entry.errors:
            click.secho(f"     ! {error}", fg="red")


# ── Register sub-commands ────────────────────────────────────────

from owl.ui.cli.adopt import adopt  # noqa: E402
from owl.ui.cli.apply import apply  # noqa: E402
from owl.ui.cli.state import state  # noqa: E402

cli.add_command(adopt)
cli.add_command(apply)
cli.add_command(state)


if __name__ == "__main__":
    cli()
