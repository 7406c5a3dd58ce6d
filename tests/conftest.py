"""Shared fixtures for DevFlow tests."""

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from devflow.config.schemas import InstallationPaths, PluginDefinition
from devflow.core.registry import PluginRegistry
from devflow.core.resolver import command_file_name


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="devflow_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def sample_plugins() -> list[PluginDefinition]:
    """A small registry with shared skills and agents."""
    return [
        PluginDefinition(
            name="devflow-core-skills",
            description="Core skills",
            skills=("core-patterns", "git-safety"),
        ),
        PluginDefinition(
            name="devflow-implement",
            description="Implement",
            commands=("/implement",),
            agents=("coder", "git"),
            skills=("core-patterns", "implementation-patterns"),
        ),
        PluginDefinition(
            name="devflow-code-review",
            description="Code review",
            commands=("/code-review",),
            agents=("git", "reviewer"),
            skills=("review-methodology", "implementation-patterns"),
        ),
        PluginDefinition(
            name="devflow-audit-claude",
            description="Audit CLAUDE.md",
            commands=("/audit-claude",),
            agents=("claude-md-auditor",),
            optional=True,
        ),
    ]


@pytest.fixture
def sample_registry(sample_plugins: list[PluginDefinition]) -> PluginRegistry:
    """Registry built from sample_plugins."""
    return PluginRegistry(sample_plugins)


def _build_source_tree(root: Path, plugins: list[PluginDefinition]) -> Path:
    """Create a DevFlow distribution tree for the given plugins."""
    for plugin in plugins:
        plugin_dir = root / "plugins" / plugin.name
        for command in plugin.commands:
            path = plugin_dir / "commands" / command_file_name(command)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {command}\n")
        for agent in plugin.agents:
            path = plugin_dir / "agents" / f"{agent}.md"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {agent} ({plugin.name})\n")
        for skill in plugin.skills:
            path = plugin_dir / "skills" / skill / "SKILL.md"
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {skill} ({plugin.name})\n")

    hooks_dir = root / "scripts" / "hooks"
    hooks_dir.mkdir(parents=True)
    for script in ("stop-update-memory.sh", "session-start-memory.sh", "ambient-prompt.sh"):
        (hooks_dir / script).write_text("#!/bin/sh\nexit 0\n")

    templates = root / "src" / "templates"
    templates.mkdir(parents=True)
    settings_template = {
        "statusLine": {"type": "command", "command": "${DEVFLOW_DIR}/scripts/statusline.sh"},
        "teammateMode": "auto",
        "env": {"CLAUDE_CODE_EXPERIMENTAL_AGENT_TEAMS": "1"},
    }
    (templates / "settings.json").write_text(json.dumps(settings_template, indent=2) + "\n")
    (templates / "claudeignore.template").write_text("node_modules/\n.env\n")

    claude_md = root / "src" / "claude" / "CLAUDE.md"
    claude_md.parent.mkdir(parents=True)
    claude_md.write_text("# Global instructions\n")
    return root


@pytest.fixture
def source_root(temp_dir: Path, sample_plugins: list[PluginDefinition]) -> Path:
    """A complete DevFlow distribution for sample_plugins."""
    return _build_source_tree(temp_dir / "source", sample_plugins)


@pytest.fixture
def install_paths(temp_dir: Path) -> InstallationPaths:
    """User-scope installation paths inside the temp directory."""
    return InstallationPaths(
        claude_dir=temp_dir / "home" / ".claude",
        devflow_dir=temp_dir / "home" / ".devflow",
    )


@pytest.fixture
def make_source_tree() -> Callable[[Path, list[PluginDefinition]], Path]:
    """Factory building a distribution tree for any plugin list."""
    return _build_source_tree
