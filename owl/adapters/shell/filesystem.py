"""
Filesystem dotfile sync — copies ``:config`` sources into place.

Sources are resolved against the owl dotfiles directory; destinations
starting with ``~`` are expanded, relative ones land under $HOME.
Returns one Receipt per binding so dry-run and apply share a report.
"""

from __future__ import annotations

import filecmp
import logging
import shutil
from pathlib import Path

from owl.adapters.base import DotfileSync
from owl.core.models.action import Receipt
from owl.core.models.config import ConfigRef, DeclaredConfig

logger = logging.getLogger(__name__)


class FilesystemDotfileSync(DotfileSync):
    """Copy dotfiles from the owl dotfiles directory to their destinations."""

    name = "filesystem"

    def __init__(self, dotfiles_dir: Path, home: Path | None = None):
        self._dotfiles_dir = dotfiles_dir
        self._home = home or Path.home()

    def sync(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        receipts = []
        for package in sorted(config.packages):
            for ref in config.packages[package].config:
                receipts.append(self._sync_ref(package, ref, dry_run))
        return receipts

    def _resolve(self, ref: ConfigRef) -> tuple[Path, Path]:
        source = Path(ref.source).expanduser()
        if not source.is_absolute():
            source = self._dotfiles_dir / source
        dest = Path(ref.destination)
        if ref.destination.startswith("~"):
            dest = self._home / ref.destination[1:].lstrip("/")
        elif not dest.is_absolute():
            dest = self._home / dest
        return source, dest

    def _sync_ref(self, package: str, ref: ConfigRef, dry_run: bool) -> Receipt:
        source, dest = self._resolve(ref)
        meta = {"source": str(source), "destination": str(dest)}

        if not source.exists():
            return Receipt.failure(
                backend=self.name,
                operation="sync_dotfile",
                error=f"Source not found: {source}",
                packages=[package],
                metadata=meta,
            )

        try:
            if _matches(source, dest):
                return Receipt.skip(
                    backend=self.name,
                    operation="sync_dotfile",
                    reason=f"Up to date: {dest}",
                    packages=[package],
                    metadata=meta,
                )
            if dry_run:
                return Receipt.skip(
                    backend=self.name,
                    operation="sync_dotfile",
                    reason=f"[dry-run] Would copy {source} → {dest}",
                    packages=[package],
                    metadata={**meta, "dry_run": True},
                )

            dest.parent.mkdir(parents=True, exist_ok=True)
            if source.is_dir():
                shutil.copytree(source, dest, dirs_exist_ok=True)
            else:
                shutil.copy2(source, dest)
        except OSError as e:
            return Receipt.failure(
                backend=self.name,
                operation="sync_dotfile",
                error=f"Filesystem error: {e}",
                packages=[package],
                metadata=meta,
            )

        logger.info("Synced %s → %s", source, dest)
        return Receipt.success(
            backend=self.name,
            operation="sync_dotfile",
            output=f"Copied {source} → {dest}",
            packages=[package],
            metadata=meta,
        )


def _matches(source: Path, dest: Path) -> bool:
    """Whether dest already holds the same content as source."""
    if source.is_dir():
        if not dest.is_dir():
            return False
        for item in source.rglob("*"):
            if item.is_file():
                target = dest / item.relative_to(source)
                if not target.is_file() or not filecmp.cmp(item, target, shallow=False):
                    return False
        return True
    return dest.is_file() and filecmp.cmp(source, dest, shallow=False)
