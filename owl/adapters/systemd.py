"""
Systemd activator — enables declared services and writes the env file.

Services are enabled with ``systemctl enable --now``. Environment
variables (global ``@env`` plus package ``:env``) are written as
``export`` lines to a shell file the user sources from their profile.
"""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path

from owl.adapters.base import SystemActivator
from owl.adapters.shell.command import CommandRunner
from owl.core.models.action import Receipt
from owl.core.models.config import DeclaredConfig

logger = logging.getLogger(__name__)

ENV_FILE_HEADER = "# Generated by owl — do not edit, changes are overwritten\n"


class SystemdActivator(SystemActivator):
    """Enable services via systemctl and render the environment file."""

    name = "systemd"

    def __init__(self, env_file: Path, runner: CommandRunner | None = None):
        self._env_file = env_file
        self._runner = runner or CommandRunner(name=self.name, timeout=120)

    def activate(self, config: DeclaredConfig, dry_run: bool = False) -> list[Receipt]:
        receipts = [
            self._enable(package, unit, dry_run)
            for package, unit in sorted(config.services().items())
        ]
        env_vars = config.all_env_vars()
        if env_vars:
            receipts.append(self._write_env(env_vars, dry_run))
        return receipts

    def _enable(self, package: str, unit: str, dry_run: bool) -> Receipt:
        state = self._runner.run(
            [["systemctl", "is-enabled", "--quiet", unit]],
            operation="service_status",
            packages=[package],
        )
        if state.ok:
            return Receipt.skip(
                backend=self.name,
                operation="enable_service",
                reason=f"{unit} already enabled",
                packages=[package],
            )
        if dry_run:
            return Receipt.skip(
                backend=self.name,
                operation="enable_service",
                reason=f"[dry-run] Would enable {unit}",
                packages=[package],
                metadata={"dry_run": True},
            )

        cmd = ["systemctl", "enable", "--now", unit]
        if os.geteuid() != 0:
            cmd.insert(0, "sudo")
        receipt = self._runner.run([cmd], operation="enable_service", packages=[package])
        if receipt.ok:
            logger.info("Enabled %s", unit)
        return receipt

    def _write_env(self, env_vars: dict[str, str], dry_run: bool) -> Receipt:
        content = ENV_FILE_HEADER + "".join(
            f"export {key}={shlex.quote(value)}\n" for key, value in sorted(env_vars.items())
        )
        path = self._env_file
        meta = {"path": str(path), "count": len(env_vars)}

        try:
            if path.is_file() and path.read_text(encoding="utf-8") == content:
                return Receipt.skip(
                    backend=self.name,
                    operation="write_env",
                    reason=f"Up to date: {path}",
                    metadata=meta,
                )
            if dry_run:
                return Receipt.skip(
                    backend=self.name,
                    operation="write_env",
                    reason=f"[dry-run] Would write {len(env_vars)} variable(s) to {path}",
                    metadata={**meta, "dry_run": True},
                )
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return Receipt.failure(
                backend=self.name,
                operation="write_env",
                error=f"Cannot write {path}: {e}",
                metadata=meta,
            )

        return Receipt.success(
            backend=self.name,
            operation="write_env",
            output=f"Written {len(env_vars)} variable(s) to {path}",
            metadata=meta,
        )
