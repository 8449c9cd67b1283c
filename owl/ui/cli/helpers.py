"""
Shared CLI plumbing — resolve paths and collaborators from the click context.

Tests inject fakes through ``ctx.obj`` (``backend``, ``prompter``,
``dotfiles``, ``system``); otherwise the real implementations are built
from settings.
"""

from __future__ import annotations

import sys

import click

from owl.adapters import build_backend
from owl.adapters.base import DotfileSync, PackageBackend, SystemActivator
from owl.adapters.shell.filesystem import FilesystemDotfileSync
from owl.adapters.systemd import SystemdActivator
from owl.core.config.loader import ConfigError
from owl.core.config.settings import OwlPaths, load_paths
from owl.core.interaction import Prompter
from owl.core.models.action import Receipt
from owl.ui.cli.prompts import ClickPrompter


def resolve_paths(ctx: click.Context) -> OwlPaths:
    """Resolve the owl directory and settings, exiting 1 on bad settings."""
    try:
        return load_paths(ctx.obj.get("owl_dir"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def get_backend(ctx: click.Context, paths: OwlPaths) -> PackageBackend:
    backend = ctx.obj.get("backend")
    if backend is None:
        settings = paths.settings
        backend = build_backend(
            aur_helper=settings.package_manager,
            pacman=settings.fallback_package_manager,
            timeout=settings.command_timeout,
        )
    return backend


def get_prompter(ctx: click.Context) -> Prompter:
    return ctx.obj.get("prompter") or ClickPrompter()


def get_dotfiles(ctx: click.Context, paths: OwlPaths) -> DotfileSync:
    return ctx.obj.get("dotfiles") or FilesystemDotfileSync(paths.dotfiles_dir)


def get_system(ctx: click.Context, paths: OwlPaths) -> SystemActivator:
    return ctx.obj.get("system") or SystemdActivator(paths.env_file)


def echo_receipt(receipt: Receipt, verbose: bool = False) -> None:
    """One line per receipt, with error or output detail."""
    label = receipt.label
    if receipt.ok:
        click.secho(f"     ✓ {label}", fg="green", nl=False)
        timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
        click.echo(timing)
        if verbose and receipt.output:
            for line in receipt.output.split("\n")[:10]:
                click.echo(f"       │ {line}")
    elif receipt.failed:
        click.secho(f"     ✗ {label}", fg="red")
        if receipt.error:
            for line in receipt.error.split("\n")[:5]:
                click.echo(f"       │ {line}")
    else:
        click.secho(f"     ⊘ {label}", fg="yellow")
