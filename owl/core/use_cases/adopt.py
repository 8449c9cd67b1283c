"""
Adopt use case — fold unmanaged installed packages into the config.

Loads the three views (store, declared config, installed sets), picks
the targets (explicit names or discovery), then walks them one by one:

    already managed           → skipped_already_managed
    untracked (discovery)     → skipped
    not installed             → skipped_not_installed
    already declared          → marked managed, no file write
    otherwise                 → ask: adopt / ignore / skip / quit

The store is saved once after the loop, whatever stopped it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from owl.adapters.base import BackendError, PackageBackend
from owl.core.config.loader import (
    PACKAGE_SECTION_HEADERS,
    ConfigError,
    all_config_files,
    load_declared_config,
    parse_config,
)
from owl.core.config.settings import OwlPaths
from owl.core.engine.reconcile import discover_candidates, normalize_targets
from owl.core.interaction import Prompter, PromptError
from owl.core.models.adoption import AddResult, AdoptOutcome, PackageAction
from owl.core.persistence.audit import AuditEntry, AuditLedger
from owl.core.persistence.state_file import StateError, load_state, save_state

logger = logging.getLogger(__name__)


@dataclass
class AdoptResult:
    """Outcome of one adopt run, grouped by reporting bucket."""

    targets: list[str] = field(default_factory=list)
    discover_mode: bool = False
    outcomes: dict[AdoptOutcome, list[str]] = field(
        default_factory=lambda: {outcome: [] for outcome in AdoptOutcome}
    )
    config_file: Path | None = None
    state_changed: bool = False
    quit: bool = False
    aborted: str | None = None      # why the loop stopped early (not quit)
    error: str | None = None        # fatal before the loop, nothing processed
    save_error: str | None = None

    def record(self, outcome: AdoptOutcome, package: str) -> None:
        self.outcomes[outcome].append(package)

    def packages(self, outcome: AdoptOutcome) -> list[str]:
        return self.outcomes[outcome]

    @property
    def exit_code(self) -> int:
        """1 only when nothing could be processed."""
        return 1 if self.error else 0

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["targets"] = self.targets
        result["discover_mode"] = self.discover_mode
        result["config_file"] = str(self.config_file) if self.config_file else None
        result["outcomes"] = {o.value: pkgs for o, pkgs in self.outcomes.items()}
        result["state_changed"] = self.state_changed
        result["quit"] = self.quit
        if self.aborted:
            result["aborted"] = self.aborted
        if self.save_error:
            result["save_error"] = self.save_error
        return result


# ═══════════════════════════════════════════════════════════════════
#  Config file editing
# ═══════════════════════════════════════════════════════════════════


def config_contains_package(package: str, content: str) -> bool:
    """Whether a config file's text already declares a package.

    Parses the text; if it doesn't parse, falls back to a literal
    trimmed-line match.
    """
    try:
        return parse_config(content).declares(package)
    except ConfigError:
        return any(line.strip() == package for line in content.splitlines())


def add_package_to_file(package: str, path: Path) -> AddResult:
    """Append a package to the first ``@packages``/``@pkgs`` section.

    Creates the section at the end of the file when there is none, and
    the file (with parent directories) when it doesn't exist. The file
    is rewritten with exactly one trailing newline.

    Raises:
        OSError: If the file can't be read or written.
        UnicodeDecodeError: If the existing file is not UTF-8.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = path.read_text(encoding="utf-8") if path.exists() else ""

    if config_contains_package(package, content):
        return AddResult.ALREADY_PRESENT

    lines = content.splitlines()
    for i, line in enumerate(lines):
        if line.strip() in PACKAGE_SECTION_HEADERS:
            lines.insert(i + 1, package)
            break
    else:
        if lines and lines[-1] != "":
            lines.append("")
        lines.extend([PACKAGE_SECTION_HEADERS[0], package])

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.debug("Added %s to %s", package, path)
    return AddResult.ADDED


def config_file_choices(paths: OwlPaths) -> list[Path]:
    """Files the user may write adopted packages to."""
    return all_config_files(paths.owl_dir) or [paths.main_config]


# ═══════════════════════════════════════════════════════════════════
#  Workflow
# ═══════════════════════════════════════════════════════════════════


def run_adopt(
    items: Iterable[str] = (),
    discover_all: bool = False,
    *,
    paths: OwlPaths,
    backend: PackageBackend,
    prompter: Prompter,
    hostname: str | None = None,
    audit: AuditLedger | None = None,
) -> AdoptResult:
    """Run the adoption workflow.

    Args:
        items: Explicit package names. Empty means discovery mode.
        discover_all: Force discovery mode even when names are given.
        paths: Resolved owl locations.
        backend: Package manager backend (system prober).
        prompter: Source of the user's decisions.
        hostname: Override the host used to pick relevant config files.
        audit: Audit ledger (defaults to the one under the owl dir).

    Returns:
        AdoptResult. ``error`` is set only for failures before the loop.
    """
    result = AdoptResult()

    # ── Load the three views (all fatal) ────────────────────────
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

    try:
        explicit_installed = backend.list_explicitly_installed()
    except BackendError as e:
        result.error = f"Failed to list explicit packages: {e}"
        return result

    # ── Targets ─────────────────────────────────────────────────
    items = list(items)
    result.discover_mode = discover_all or not items
    if result.discover_mode:
        result.targets = discover_candidates(explicit_installed, state, config)
    else:
        result.targets = normalize_targets(items)

    if not result.targets:
        return result

    prompter.notify(f"{len(result.targets)} package(s) available for adoption")

    selected_config: Path | None = None
    changed = False

    for pkg in result.targets:
        if state.is_managed(pkg):
            result.record(AdoptOutcome.SKIPPED_ALREADY_MANAGED, pkg)
            continue

        # Ignored packages stay out of discovery; naming one explicitly reconsiders it
        if result.discover_mode and state.is_untracked(pkg):
            result.record(AdoptOutcome.SKIPPED, pkg)
            continue

        if pkg not in installed:
            result.record(AdoptOutcome.SKIPPED_NOT_INSTALLED, pkg)
            continue

        if config.declares(pkg):
            changed |= state.add_managed(pkg)
            result.record(AdoptOutcome.ADOPTED_STATE_ONLY, pkg)
            continue

        try:
            action = prompter.choose_action(pkg)
        except PromptError as e:
            logger.error("Failed to read selection, stopping adopt: %s", e)
            result.aborted = f"Failed to read selection: {e}"
            break

        if action is PackageAction.ADOPT:
            if selected_config is None:
                try:
                    choice = prompter.choose_config_file(config_file_choices(paths))
                except PromptError as e:
                    logger.error("Failed to select config: %s", e)
                    result.aborted = f"Failed to select config: {e}"
                    break
                if choice is None:
                    result.aborted = "Adopt cancelled by user"
                    prompter.notify(result.aborted)
                    break
                selected_config = choice

            try:
                added = add_package_to_file(pkg, selected_config)
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Failed to adopt %s: %s", pkg, e)
                result.record(AdoptOutcome.FAILED, pkg)
                continue

            state.remove_untracked(pkg)
            state.add_managed(pkg)
            changed = True
            if added is AddResult.ADDED:
                result.config_file = selected_config
                result.record(AdoptOutcome.ADOPTED, pkg)
            else:
                result.record(AdoptOutcome.ADOPTED_STATE_ONLY, pkg)

        elif action is PackageAction.IGNORE:
            state.add_untracked(pkg)
            state.remove_managed(pkg)
            changed = True
            result.record(AdoptOutcome.IGNORED, pkg)

        elif action is PackageAction.SKIP:
            result.record(AdoptOutcome.SKIPPED, pkg)

        else:
            result.quit = True
            break

    # ── Persist once ────────────────────────────────────────────
    result.state_changed = changed
    if changed:
        try:
            save_state(state, paths.state_file)
        except StateError as e:
            logger.error("Failed to save state: %s", e)
            result.save_error = str(e)

        ledger = audit or AuditLedger(paths.audit_file)
        ledger.append(_audit_entry(result))

    return result


def _audit_entry(result: AdoptResult) -> AuditEntry:
    errors = [msg for msg in (result.aborted, result.save_error) if msg]
    failed = result.packages(AdoptOutcome.FAILED)
    if failed:
        errors.append(f"Write failed: {', '.join(failed)}")
    return AuditEntry(
        command="adopt",
        status="failed" if result.save_error else ("partial" if errors else "ok"),
        packages={o.value: pkgs for o, pkgs in result.outcomes.items() if pkgs},
        errors=errors,
        context={
            "discover_mode": result.discover_mode,
            "config_file": str(result.config_file) if result.config_file else None,
        },
    )
