"""Tests for devflow.core.uninstaller module."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from devflow.config.schemas import InstallationPaths
from devflow.core.installer import InstallOptions, PluginInstaller
from devflow.core.registry import PluginRegistry
from devflow.core.uninstaller import PluginUninstaller, UninstallError, is_devflow_installed


@pytest.fixture
def installed(
    install_paths: InstallationPaths,
    source_root: Path,
    sample_registry: PluginRegistry,
) -> InstallationPaths:
    """A full installation with memory and ambient hooks."""
    options = InstallOptions(memory=True, ambient=True, skip_docs=True)
    installer = PluginInstaller(install_paths, source_root, sample_registry, options)
    installer.install(list(sample_registry), full=True)
    return install_paths


class TestIsDevflowInstalled:
    """Tests for is_devflow_installed."""

    def test_detects_commands_directory(self, installed: InstallationPaths, temp_dir: Path):
        """Installed when the namespaced commands directory exists."""
        assert is_devflow_installed(installed.claude_dir)
        assert not is_devflow_installed(temp_dir / "nowhere")


class TestFullUninstall:
    """Tests for removing everything."""

    def test_removes_all_devflow_assets(
        self, installed: InstallationPaths, sample_registry: PluginRegistry
    ):
        """Commands, agents, skills, scripts and hooks are removed."""
        user_skill = installed.skills_dir / "my-skill" / "SKILL.md"
        user_skill.parent.mkdir(parents=True)
        user_skill.write_text("mine")

        summary = PluginUninstaller(installed, sample_registry).uninstall()

        assert summary.full
        assert not installed.commands_dir.exists()
        assert not installed.agents_dir.exists()
        assert not installed.devflow_dir.exists()
        for skill in sample_registry.all_skill_names():
            assert not (installed.skills_dir / skill).exists()
        assert user_skill.exists()
        assert summary.hooks_removed == ["memory", "ambient"]
        assert "hooks" not in json.loads(installed.settings_path.read_text())

    def test_removes_legacy_skills(
        self, installed: InstallationPaths, sample_registry: PluginRegistry
    ):
        """Old prefixed skill directories are cleaned up too."""
        legacy = installed.skills_dir / "devflow-core-patterns"
        legacy.mkdir(parents=True)

        summary = PluginUninstaller(installed, sample_registry).uninstall()

        assert not legacy.exists()
        assert "devflow-core-patterns" in summary.removed.skills

    def test_selecting_everything_is_full(
        self, installed: InstallationPaths, sample_registry: PluginRegistry
    ):
        """Selecting every plugin takes the full path."""
        summary = PluginUninstaller(installed, sample_registry).uninstall(sample_registry.plugins)

        assert summary.full
        assert not installed.devflow_dir.exists()

    def test_nothing_installed(self, install_paths: InstallationPaths, sample_registry: PluginRegistry):
        """Uninstalling from an empty scope succeeds."""
        summary = PluginUninstaller(install_paths, sample_registry).uninstall()

        assert summary.full
        assert summary.hooks_removed == []
        assert not summary.devflow_dir_removed


class TestSelectiveUninstall:
    """Tests for removing selected plugins."""

    def test_keeps_shared_assets(self, installed: InstallationPaths, sample_registry: PluginRegistry):
        """Assets still used by remaining plugins stay installed."""
        uninstaller = PluginUninstaller(installed, sample_registry)

        summary = uninstaller.uninstall([sample_registry.get("devflow-implement")])

        assert not summary.full
        assert summary.removed_plugins == ["devflow-implement"]
        assert not (installed.commands_dir / "implement.md").exists()
        assert not (installed.agents_dir / "coder.md").exists()
        assert (installed.agents_dir / "git.md").exists()
        assert (installed.skills_dir / "implementation-patterns").is_dir()
        assert (installed.commands_dir / "code-review.md").exists()
        assert installed.devflow_dir.exists()

    def test_removes_unshared_skills(
        self, installed: InstallationPaths, sample_registry: PluginRegistry
    ):
        """Skills declared only by removed plugins are deleted."""
        selected = sample_registry.select(["devflow-implement", "devflow-code-review"])

        summary = PluginUninstaller(installed, sample_registry).uninstall(selected)

        assert summary.removed.skills == ["implementation-patterns", "review-methodology"]
        assert not (installed.skills_dir / "review-methodology").exists()
        assert (installed.skills_dir / "core-patterns").is_dir()

    def test_hooks_untouched(self, installed: InstallationPaths, sample_registry: PluginRegistry):
        """Selective uninstall leaves settings.json alone."""
        before = installed.settings_path.read_text()

        PluginUninstaller(installed, sample_registry).uninstall(
            [sample_registry.get("devflow-audit-claude")]
        )

        assert installed.settings_path.read_text() == before

    def test_failure_names_step(self, installed: InstallationPaths, sample_registry: PluginRegistry):
        """Filesystem failures are wrapped in UninstallError."""
        with patch("devflow.core.uninstaller.remove_file", side_effect=PermissionError("denied")):
            with pytest.raises(UninstallError) as exc_info:
                PluginUninstaller(installed, sample_registry).uninstall(
                    [sample_registry.get("devflow-implement")]
                )

        assert exc_info.value.step == "commands"

    def test_empty_selection_removes_nothing(
        self, installed: InstallationPaths, sample_registry: PluginRegistry
    ):
        """An empty selection is not a full uninstall."""
        before = sorted(installed.claude_dir.rglob("*"))

        summary = PluginUninstaller(installed, sample_registry).uninstall([])

        assert not summary.full
        assert summary.removed_plugins == []
        assert summary.removed.commands == []
        assert summary.removed.skills == []
        assert sorted(installed.claude_dir.rglob("*")) == before
        assert installed.devflow_dir.exists()
