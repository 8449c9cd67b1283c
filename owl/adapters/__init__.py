"""Adapters — bindings to the package manager, filesystem and init system.

Public re-exports for convenient access.
"""

from owl.adapters.base import (
    BackendError,
    DotfileSync,
    PackageBackend,
    SystemActivator,
)
from owl.adapters.mock import MockBackend
from owl.adapters.pacman import PacmanBackend

__all__ = [
    "BackendError",
    "DotfileSync",
    "MockBackend",
    "PackageBackend",
    "PacmanBackend",
    "SystemActivator",
    "build_backend",
]


def build_backend(aur_helper: str = "paru", pacman: str = "pacman", timeout: int = 3600) -> PackageBackend:
    """Construct the real backend from settings values."""
    from owl.adapters.shell.command import CommandRunner

    return PacmanBackend(
        aur_helper=aur_helper,
        pacman=pacman,
        runner=CommandRunner(name=aur_helper, timeout=timeout),
    )
