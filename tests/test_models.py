"""
Tests for core models — package state, declared config, adoption types, receipts.
"""

import pytest

from owl.core.models.action import Receipt
from owl.core.models.adoption import PackageAction
from owl.core.models.config import ConfigRef, DeclaredConfig, PackageEntry
from owl.core.models.state import PackageState


class TestPackageState:
    """Tests for the managed / untracked / hidden classification."""

    def test_empty(self):
        state = PackageState()
        assert state.managed == set()
        assert state.untracked == set()
        assert state.hidden == set()
        assert state.schema_version == 1

    def test_add_managed_evicts_untracked(self):
        state = PackageState(untracked={"htop"})
        assert state.add_managed("htop") is True
        assert state.is_managed("htop")
        assert not state.is_untracked("htop")

    def test_add_untracked_evicts_managed(self):
        state = PackageState(managed={"htop"})
        assert state.add_untracked("htop") is True
        assert state.is_untracked("htop")
        assert not state.is_managed("htop")

    def test_add_managed_twice_reports_no_change(self):
        state = PackageState()
        assert state.add_managed("htop") is True
        assert state.add_managed("htop") is False

    def test_remove_missing_reports_no_change(self):
        state = PackageState()
        assert state.remove_managed("htop") is False
        assert state.remove_untracked("htop") is False
        assert state.remove_hidden("htop") is False

    def test_hidden_is_orthogonal(self):
        state = PackageState()
        state.add_managed("htop")
        assert state.add_hidden("htop") is True
        assert state.add_hidden("htop") is False
        assert state.is_managed("htop")
        assert state.is_hidden("htop")

    def test_never_in_both_sets(self):
        """Whatever the sequence of mutations, managed and untracked stay disjoint."""
        state = PackageState()
        for op in ("add_managed", "add_untracked", "add_managed", "add_untracked"):
            getattr(state, op)("vim")
            assert not (state.managed & state.untracked)

    def test_serializes_sorted_lists(self):
        state = PackageState(managed={"zsh", "alacritty", "htop"})
        data = state.model_dump(mode="json")
        assert data["managed"] == ["alacritty", "htop", "zsh"]
        assert data["untracked"] == []

    def test_roundtrip_from_lists(self):
        state = PackageState.model_validate({"managed": ["b", "a"], "hidden": ["c"]})
        assert state.managed == {"a", "b"}
        assert state.hidden == {"c"}


class TestPackageAction:
    """Tests for parsing prompt answers."""

    @pytest.mark.parametrize("raw,expected", [
        ("a", PackageAction.ADOPT),
        ("adopt", PackageAction.ADOPT),
        ("I", PackageAction.IGNORE),
        (" Skip ", PackageAction.SKIP),
        ("q", PackageAction.QUIT),
    ])
    def test_valid(self, raw, expected):
        assert PackageAction.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["", "x", "adoptx", "yes"])
    def test_invalid(self, raw):
        assert PackageAction.parse(raw) is None


class TestDeclaredConfig:
    """Tests for merging declared configuration."""

    def test_merge_later_wins(self):
        base = DeclaredConfig(env_vars={"EDITOR": "vi"}, sources=["main.owl"])
        base.packages["htop"] = PackageEntry()
        other = DeclaredConfig(env_vars={"EDITOR": "nvim"}, sources=["hosts/box.owl"])
        other.packages["neovim"] = PackageEntry(service=None)

        base.merge(other)
        assert base.declares("htop")
        assert base.declares("neovim")
        assert base.env_vars["EDITOR"] == "nvim"
        assert base.sources == ["main.owl", "hosts/box.owl"]

    def test_merge_same_package_combines(self):
        base = DeclaredConfig()
        base.packages["nvim"] = PackageEntry(config=[ConfigRef(source="a", destination="~/a")])
        other = DeclaredConfig()
        other.packages["nvim"] = PackageEntry(
            config=[ConfigRef(source="b", destination="~/b")],
            service="x.service",
        )

        base.merge(other)
        entry = base.packages["nvim"]
        assert [ref.source for ref in entry.config] == ["a", "b"]
        assert entry.service == "x.service"

    def test_services_and_env(self):
        config = DeclaredConfig(env_vars={"LANG": "C", "EDITOR": "vi"})
        config.packages["docker"] = PackageEntry(service="docker.service")
        config.packages["neovim"] = PackageEntry(env_vars={"EDITOR": "nvim"})
        config.packages["htop"] = PackageEntry()

        assert config.services() == {"docker": "docker.service"}
        assert config.all_env_vars() == {"LANG": "C", "EDITOR": "nvim"}


class TestReceipt:
    """Tests for Receipt constructors."""

    def test_success(self):
        r = Receipt.success(backend="mock", operation="install_repo", output="done")
        assert r.ok
        assert not r.failed

    def test_failure(self):
        r = Receipt.failure(backend="mock", operation="remove", error="boom")
        assert r.failed
        assert r.error == "boom"

    def test_skip(self):
        r = Receipt.skip(backend="mock", operation="write_env", reason="Up to date")
        assert r.status == "skipped"
        assert not r.ok
        assert not r.failed
        assert r.output == "Up to date"

    def test_dry_run_and_label(self):
        preview = Receipt.skip(
            backend="systemd", operation="enable_service",
            reason="[dry-run] Would enable docker.service", metadata={"dry_run": True},
        )
        assert preview.is_dry_run
        assert preview.label == "[dry-run] Would enable docker.service"

        done = Receipt.success(backend="paru", operation="install_aur", packages=["paru-bin"])
        assert not done.is_dry_run
        assert done.label == "install_aur: paru-bin"
