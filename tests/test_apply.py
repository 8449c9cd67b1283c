"""
Tests for the apply orchestrator — step order, confirmations, bookkeeping.
"""

from __future__ import annotations

import pytest
from conftest import RecordingDotfiles, RecordingSystem, ScriptedPrompter

from owl.adapters.mock import MockBackend
from owl.core.models.action import Receipt
from owl.core.models.state import PackageState
from owl.core.persistence.audit import AuditLedger
from owl.core.persistence.state_file import StateError, load_state, save_state
from owl.core.use_cases import apply as apply_module
from owl.core.use_cases.apply import StepReport, run_apply

STEP_NAMES = ["removals", "repo_install", "aur", "repo_update", "dotfiles", "system"]


def _run(paths, backend, prompter=None, **kw):
    kw.setdefault("dotfiles", RecordingDotfiles())
    kw.setdefault("system", RecordingSystem())
    kw.setdefault("environ", {})
    return run_apply(
        paths=paths,
        backend=backend,
        prompter=prompter or ScriptedPrompter(),
        hostname="box",
        **kw,
    )


@pytest.fixture
def scenario(paths, write_config):
    """htop (repo) and paru-bin (AUR) declared; vim managed but dropped."""
    write_config("main.owl", "@packages\nhtop\nparu-bin\nfd\n")
    save_state(PackageState(managed={"vim"}), paths.state_file)
    backend = MockBackend(
        installed=["vim", "fd", "base"],
        repo_packages=["htop", "fd", "vim"],
        aur_updates=["yay"],
    )
    return backend


class TestStepOrder:
    """Tests for the fixed step sequence."""

    def test_full_run(self, paths, scenario):
        prompter = ScriptedPrompter(confirm=True)
        result = _run(paths, scenario, prompter)

        assert [s.name for s in result.steps] == STEP_NAMES
        assert scenario.operations == [
            "list_installed",
            "remove",
            "categorize",
            "list_aur_updates",
            "install_repo",
            "install_aur",
            "update_aur",
            "update_repo",
        ]
        assert result.repo_to_install == ["htop"]
        assert result.aur_to_install == ["paru-bin"]
        assert result.aur_to_update == ["yay"]
        assert result.exit_code == 0

        state = load_state(paths.state_file)
        assert state.managed == {"htop", "paru-bin", "fd"}

    def test_one_confirmation_for_all_aur(self, paths, scenario):
        prompter = ScriptedPrompter(confirm=True)
        _run(paths, scenario, prompter)

        aur_confirms = [pkgs for msg, pkgs in prompter.confirmations if "AUR" in msg]
        assert aur_confirms == [["paru-bin", "yay"]]

    def test_collaborators_called(self, paths, scenario):
        dotfiles, system = RecordingDotfiles(), RecordingSystem()
        _run(paths, scenario, ScriptedPrompter(), dotfiles=dotfiles, system=system)
        assert dotfiles.calls == [False]
        assert system.calls == [False]

    def test_audit_entry(self, paths, scenario):
        _run(paths, scenario, ScriptedPrompter())
        entries = AuditLedger(paths.audit_file).read()
        assert len(entries) == 1
        assert entries[0].command == "apply"
        assert entries[0].packages["removals"] == ["vim"]
        assert entries[0].packages["repo_install"] == ["htop"]


class TestDryRun:
    """Tests for --dry-run."""

    def test_no_mutations(self, paths, scenario):
        prompter = ScriptedPrompter()
        dotfiles = RecordingDotfiles()
        result = _run(paths, scenario, prompter, dry_run=True, dotfiles=dotfiles)

        assert scenario.operations == ["list_installed", "categorize"]
        assert prompter.confirmations == []
        assert dotfiles.calls == [True]
        assert [s.status for s in result.steps[:4]] == ["dry_run"] * 4
        assert result.aur_to_update == []
        assert load_state(paths.state_file).managed == {"vim"}
        assert not paths.audit_file.exists()
        assert result.exit_code == 0


class TestRemovals:
    """Tests for the removal step."""

    def test_declined_keeps_managed(self, paths, scenario):
        prompter = ScriptedPrompter(confirm=False)
        result = _run(paths, scenario, prompter)

        assert result.step("removals").status == "cancelled"
        assert "remove" not in scenario.operations
        assert "vim" in load_state(paths.state_file).managed

    def test_failure_keeps_managed(self, paths, scenario):
        scenario.set_failure("remove", "target is required by base")
        result = _run(paths, scenario, ScriptedPrompter())

        step = result.step("removals")
        assert step.status == "failed"
        assert "vim" in load_state(paths.state_file).managed
        # later steps still ran
        assert "install_repo" in scenario.operations
        assert result.exit_code == 1

    def test_non_interactive_skips_removal(self, paths, scenario):
        prompter = ScriptedPrompter()
        result = _run(paths, scenario, prompter, non_interactive=True)

        assert result.step("removals").status == "skipped"
        assert "remove" not in scenario.operations
        assert prompter.confirmations == []
        # AUR operations proceed without asking
        assert "install_aur" in scenario.operations
        assert "vim" in load_state(paths.state_file).managed


class TestAur:
    """Tests for the AUR step."""

    def test_declined_skips_install_and_update(self, paths, write_config):
        write_config("main.owl", "@packages\nparu-bin\n")
        backend = MockBackend(aur_updates=["yay"])
        result = _run(paths, backend, ScriptedPrompter(confirm=False))

        assert result.step("aur").status == "cancelled"
        assert "install_aur" not in backend.operations
        assert "update_aur" not in backend.operations
        assert "update_repo" in backend.operations

    def test_install_failure_not_tracked(self, paths, write_config):
        write_config("main.owl", "@packages\nparu-bin\n")
        backend = MockBackend()
        backend.set_failure("install_aur", "build failed")
        result = _run(paths, backend, ScriptedPrompter())

        assert result.step("aur").failed
        assert "paru-bin" not in load_state(paths.state_file).managed


class TestPassthrough:
    """Tests for OWL_PM_PASSTHROUGH."""

    def test_passthrough_forwarded(self, paths, write_config):
        write_config("main.owl", "@packages\nhtop\n")
        backend = MockBackend(repo_packages=["htop"])
        prompter = ScriptedPrompter()
        result = _run(paths, backend, prompter, environ={"OWL_PM_PASSTHROUGH": "1"})

        assert result.passthrough
        assert ("install_repo", ("htop",), True) in backend.call_log
        assert ("update_repo", (), True) in backend.call_log
        assert prompter.messages == ["Package manager passthrough enabled"]

    def test_ignored_non_interactive(self, paths, write_config):
        write_config("main.owl", "@packages\nhtop\n")
        backend = MockBackend(repo_packages=["htop"])
        result = _run(
            paths, backend, non_interactive=True, environ={"OWL_PM_PASSTHROUGH": "1"},
        )
        assert not result.passthrough
        assert ("install_repo", ("htop",), False) in backend.call_log


class TestBookkeeping:
    """Tests for tracking and pruning without package operations."""

    def test_tracks_declared_installed_and_prunes_stale(self, paths, write_config):
        write_config("main.owl", "@packages\nhtop\n")
        save_state(PackageState(managed={"gone"}), paths.state_file)
        backend = MockBackend(installed=["htop"])

        result = _run(paths, backend)
        assert result.state_changed
        assert load_state(paths.state_file).managed == {"htop"}

    def test_nothing_to_do(self, paths):
        backend = MockBackend()
        result = _run(paths, backend)
        assert not result.state_changed
        assert not paths.state_file.exists()
        assert result.exit_code == 0


class TestFailures:
    """Tests for load and save failures."""

    def test_load_failure_runs_nothing(self, paths):
        backend = MockBackend()
        backend.set_failure("list_installed", "db locked")
        result = _run(paths, backend)

        assert "db locked" in result.error
        assert result.steps == []
        assert result.exit_code == 1

    def test_bad_config(self, paths, write_config):
        write_config("main.owl", "htop\n")
        result = _run(paths, MockBackend())
        assert result.error.startswith("Failed to load config")

    def test_save_failure(self, paths, write_config, monkeypatch):
        write_config("main.owl", "@packages\nhtop\n")

        def failing_save(state, path):
            raise StateError("disk full")

        monkeypatch.setattr(apply_module, "save_state", failing_save)
        result = _run(paths, MockBackend(repo_packages=["htop"]))
        assert result.save_error == "disk full"
        assert result.exit_code == 1

    def test_failed_collaborator_fails_run(self, paths):
        broken = Receipt.failure(backend="filesystem", operation="sync_dotfile", error="denied")
        result = _run(paths, MockBackend(), dotfiles=RecordingDotfiles([broken]))
        assert result.step("dotfiles").status == "failed"
        assert result.exit_code == 1


class TestStepReport:

    def test_settle(self):
        ok = Receipt.success(backend="m", operation="x")
        bad = Receipt.failure(backend="m", operation="x", error="e")
        skip = Receipt.skip(backend="m", operation="x")

        assert StepReport(name="s", receipts=[ok, skip]).settle().status == "ok"
        assert StepReport(name="s", receipts=[ok, bad]).settle().status == "partial"
        assert StepReport(name="s", receipts=[bad]).settle().status == "failed"
        assert StepReport(name="s", receipts=[skip]).settle().status == "noop"
        assert StepReport(name="s").settle().status == "noop"
