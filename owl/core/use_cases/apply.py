"""
Apply use case — converge the host onto the declared configuration.

Step order is fixed:

    1. removals            (managed but no longer declared)
    2. repository installs (no confirmation)
    3. AUR installs + AUR updates (one confirmation)
    4. repository update
    5. dotfile sync
    6. services + environment

Removals go first so they can't conflict with incoming installs, and
packages exist before the services that need them are enabled. A failed
step is reported and the next one still runs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from owl.adapters.base import BackendError, DotfileSync, PackageBackend, SystemActivator
from owl.core.config.loader import ConfigError, load_declared_config
from owl.core.config.settings import OwlPaths, passthrough_enabled
from owl.core.engine.reconcile import (
    PackagePlan,
    categorize_install_sets,
    compute_aur_updates,
    compute_package_plan,
)
from owl.core.interaction import Prompter
from owl.core.models.action import Receipt
from owl.core.models.state import PackageState
from owl.core.persistence.audit import AuditEntry, AuditLedger
from owl.core.persistence.state_file import StateError, load_state, save_state

logger = logging.getLogger(__name__)


@dataclass
class StepReport:
    """What happened in one apply step."""

    name: str
    status: str = "noop"        # noop, ok, partial, failed, dry_run, cancelled, skipped
    message: str = ""
    packages: list[str] = field(default_factory=list)
    receipts: list[Receipt] = field(default_factory=list)
    state_changed: bool = False

    @property
    def failed(self) -> bool:
        return self.status in ("failed", "partial")

    def settle(self) -> StepReport:
        """Derive the status from the collected receipts."""
        if not self.receipts:
            return self
        failed = sum(1 for r in self.receipts if r.failed)
        if failed == 0:
            self.status = "ok" if any(r.ok for r in self.receipts) else "noop"
        elif failed == len(self.receipts):
            self.status = "failed"
        else:
            self.status = "partial"
        return self

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "packages": self.packages,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class ApplyResult:
    """Outcome of one apply run."""

    plan: PackagePlan | None = None
    dry_run: bool = False
    non_interactive: bool = False
    passthrough: bool = False
    repo_to_install: list[str] = field(default_factory=list)
    aur_to_install: list[str] = field(default_factory=list)
    aur_to_update: list[str] = field(default_factory=list)
    steps: list[StepReport] = field(default_factory=list)
    state_changed: bool = False
    error: str | None = None
    save_error: str | None = None

    @property
    def failed_steps(self) -> list[StepReport]:
        return [s for s in self.steps if s.failed]

    @property
    def exit_code(self) -> int:
        return 1 if self.error or self.failed_steps or self.save_error else 0

    def step(self, name: str) -> StepReport | None:
        for s in self.steps:
            if s.name == name:
                return s
        return None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result
        result["dry_run"] = self.dry_run
        result["non_interactive"] = self.non_interactive
        result["passthrough"] = self.passthrough
        result["plan"] = self.plan.to_dict() if self.plan else None
        result["repo_to_install"] = self.repo_to_install
        result["aur_to_install"] = self.aur_to_install
        result["aur_to_update"] = self.aur_to_update
        result["steps"] = [s.to_dict() for s in self.steps]
        result["state_changed"] = self.state_changed
        if self.save_error:
            result["save_error"] = self.save_error
        return result


# ═══════════════════════════════════════════════════════════════════
#  Steps
# ═══════════════════════════════════════════════════════════════════


def handle_removals(
    to_remove: Sequence[str],
    state: PackageState,
    backend: PackageBackend,
    prompter: Prompter,
    *,
    dry_run: bool = False,
    non_interactive: bool = False,
) -> StepReport:
    """Remove packages that are managed but no longer declared.

    The backend call is all-or-nothing for the store: only a successful
    batch drops the packages from ``managed``.
    """
    step = StepReport(name="removals", packages=list(to_remove))
    if not to_remove:
        return step

    if dry_run:
        step.status = "dry_run"
        step.message = f"Would remove {len(to_remove)} package(s)"
        return step

    if non_interactive:
        logger.warning(
            "Skipping removal of %s: removal needs confirmation", ", ".join(to_remove)
        )
        step.status = "skipped"
        step.message = "Removal needs confirmation; skipped in non-interactive mode"
        return step

    if not prompter.confirm(f"Remove {len(to_remove)} package(s) no longer in config?", to_remove):
        step.status = "cancelled"
        step.message = "Package removal cancelled"
        return step

    receipt = backend.remove(to_remove)
    step.receipts.append(receipt)
    if receipt.failed:
        logger.error("Failed to remove packages: %s", receipt.error)
        step.message = f"Failed to remove packages: {receipt.error}"
        return step.settle()

    for package in to_remove:
        step.state_changed |= state.remove_managed(package)
    step.message = f"Removed {len(to_remove)} package(s)"
    return step.settle()


def install_repo_packages(
    repo_to_install: Sequence[str],
    state: PackageState,
    backend: PackageBackend,
    *,
    dry_run: bool = False,
    passthrough: bool = False,
) -> StepReport:
    """Install official-repository packages. No confirmation needed."""
    step = StepReport(name="repo_install", packages=list(repo_to_install))
    if not repo_to_install:
        return step

    if dry_run:
        step.status = "dry_run"
        step.message = f"Would install {', '.join(repo_to_install)} from official repositories"
        return step

    receipt = backend.install_repo(repo_to_install, passthrough=passthrough)
    step.receipts.append(receipt)
    if receipt.ok:
        for package in repo_to_install:
            step.state_changed |= state.add_managed(package)
    else:
        logger.error("Failed to install repository packages: %s", receipt.error)
        step.message = receipt.error or ""
    return step.settle()


def handle_aur_operations(
    aur_to_install: Sequence[str],
    aur_to_update: Sequence[str],
    state: PackageState,
    backend: PackageBackend,
    prompter: Prompter,
    *,
    dry_run: bool = False,
    non_interactive: bool = False,
    passthrough: bool = False,
) -> StepReport:
    """Install and update AUR packages behind a single confirmation."""
    all_aur = [*aur_to_install, *aur_to_update]
    step = StepReport(name="aur", packages=all_aur)
    if not all_aur:
        return step

    if dry_run:
        step.status = "dry_run"
        step.message = f"Would install/update {', '.join(all_aur)} from AUR"
        return step

    if not non_interactive and not prompter.confirm(
        f"Install/update {len(all_aur)} AUR package(s)?", all_aur
    ):
        step.status = "cancelled"
        step.message = "AUR package operations cancelled"
        return step

    if aur_to_install:
        receipt = backend.install_aur(aur_to_install, passthrough=passthrough)
        step.receipts.append(receipt)
        if receipt.ok:
            for package in aur_to_install:
                step.state_changed |= state.add_managed(package)
        else:
            logger.error("Failed to install AUR packages: %s", receipt.error)

    if aur_to_update:
        receipt = backend.update_aur(aur_to_update, passthrough=passthrough)
        step.receipts.append(receipt)
        if receipt.failed:
            logger.error("Failed to update AUR packages: %s", receipt.error)

    return step.settle()


def update_repo_packages(
    backend: PackageBackend,
    *,
    dry_run: bool = False,
    passthrough: bool = False,
) -> StepReport:
    """Full upgrade of official-repository packages."""
    step = StepReport(name="repo_update")
    if dry_run:
        step.status = "dry_run"
        step.message = "Would update official repository packages"
        return step

    receipt = backend.update_repo(passthrough=passthrough)
    step.receipts.append(receipt)
    if receipt.failed:
        logger.error("Failed to update repo packages: %s", receipt.error)
        step.message = receipt.error or ""
    return step.settle()


def _collaborator_step(name: str, receipts: list[Receipt], dry_run: bool) -> StepReport:
    step = StepReport(name=name, receipts=receipts).settle()
    for receipt in receipts:
        if receipt.failed:
            logger.error("%s: %s", name, receipt.error)
    if dry_run and not step.failed and any(r.is_dry_run for r in receipts):
        step.status = "dry_run"
    return step


# ═══════════════════════════════════════════════════════════════════
#  Orchestration
# ═══════════════════════════════════════════════════════════════════


def run_apply(
    *,
    paths: OwlPaths,
    backend: PackageBackend,
    prompter: Prompter,
    dotfiles: DotfileSync,
    system: SystemActivator,
    dry_run: bool = False,
    non_interactive: bool = False,
    hostname: str | None = None,
    environ: Mapping[str, str] | None = None,
    audit: AuditLedger | None = None,
) -> ApplyResult:
    """Converge installed packages, dotfiles and services on the config.

    Returns:
        ApplyResult. ``error`` is set only when loading failed and no
        step ran.
    """
    result = ApplyResult(dry_run=dry_run, non_interactive=non_interactive)

    # ── Load (all fatal) ────────────────────────────────────────
    try:
        state = load_state(paths.state_file)
    except StateError as e:
        result.error = f"Failed to load state: {e}"
        return result

    try:
        config = load_declared_config(paths.owl_dir, hostname)
    except ConfigError as e:
        result.error = f"Failed to load config: {e}"
        return result

    try:
        installed = backend.list_installed()
    except BackendError as e:
        result.error = f"Failed to list installed packages: {e}"
        return result

    plan = compute_package_plan(config, installed, state)
    result.plan = plan
    result.passthrough = passthrough_enabled(non_interactive, environ)
    if result.passthrough:
        prompter.notify("Package manager passthrough enabled")

    changed = False

    # 1. removals
    step = handle_removals(
        plan.to_remove, state, backend, prompter,
        dry_run=dry_run, non_interactive=non_interactive,
    )
    result.steps.append(step)
    changed |= step.state_changed

    # 2–3. installs, AUR updates
    result.repo_to_install, result.aur_to_install = categorize_install_sets(
        backend, plan.to_install
    )
    result.aur_to_update = compute_aur_updates(backend, dry_run)

    step = install_repo_packages(
        result.repo_to_install, state, backend,
        dry_run=dry_run, passthrough=result.passthrough,
    )
    result.steps.append(step)
    changed |= step.state_changed

    step = handle_aur_operations(
        result.aur_to_install, result.aur_to_update, state, backend, prompter,
        dry_run=dry_run, non_interactive=non_interactive, passthrough=result.passthrough,
    )
    result.steps.append(step)
    changed |= step.state_changed

    # 4. repository update
    result.steps.append(
        update_repo_packages(backend, dry_run=dry_run, passthrough=result.passthrough)
    )

    # 5–6. collaborators
    result.steps.append(_collaborator_step("dotfiles", dotfiles.sync(config, dry_run), dry_run))
    result.steps.append(_collaborator_step("system", system.activate(config, dry_run), dry_run))

    # ── Bookkeeping: declared + installed → managed, drop stale ─
    if not dry_run:
        for package in plan.to_track:
            changed |= state.add_managed(package)
        for package in plan.stale:
            changed |= state.remove_managed(package)

    result.state_changed = changed
    if changed:
        try:
            save_state(state, paths.state_file)
        except StateError as e:
            logger.error("Failed to update package state: %s", e)
            result.save_error = str(e)

    if not dry_run and (changed or any(s.receipts for s in result.steps)):
        ledger = audit or AuditLedger(paths.audit_file)
        ledger.append(_audit_entry(result))

    return result


def _audit_entry(result: ApplyResult) -> AuditEntry:
    packages: dict[str, list[str]] = {}
    for step in result.steps:
        if step.status in ("ok", "partial") and step.packages:
            packages[step.name] = step.packages
    errors = [f"{s.name}: {s.message or 'failed'}" for s in result.failed_steps]
    if result.save_error:
        errors.append(result.save_error)
    return AuditEntry(
        command="apply",
        status="ok" if not errors else ("failed" if result.save_error else "partial"),
        packages=packages,
        errors=errors,
        context={
            "non_interactive": result.non_interactive,
            "passthrough": result.passthrough,
            "plan": result.plan.to_dict() if result.plan else {},
        },
    )
