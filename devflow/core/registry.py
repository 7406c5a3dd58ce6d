"""Plugin registry: the ordered, immutable list of DevFlow plugins.

The registry is constructed once and passed by value into the resolver and
the orchestrators. Order matters: when several plugins declare the same
skill or agent, the first one in registry order owns it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path

from devflow.config.parser import ConfigError, load_registry_file
from devflow.config.schemas import PluginDefinition

PLUGIN_PREFIX = "devflow-"
CORE_SKILLS_PLUGIN = "devflow-core-skills"

DEVFLOW_PLUGINS: tuple[PluginDefinition, ...] = (
    PluginDefinition(
        name="devflow-core-skills",
        description="Auto-activating quality enforcement (foundation layer)",
        skills=(
            "accessibility",
            "core-patterns",
            "docs-framework",
            "frontend-design",
            "git-safety",
            "git-workflow",
            "github-patterns",
            "input-validation",
            "react",
            "test-patterns",
            "typescript",
        ),
    ),
    PluginDefinition(
        name="devflow-specify",
        description="Interactive feature specification",
        commands=("/specify",),
        agents=("skimmer", "synthesizer"),
        skills=("agent-teams",),
    ),
    PluginDefinition(
        name="devflow-implement",
        description="Complete task implementation workflow",
        commands=("/implement",),
        agents=(
            "git",
            "skimmer",
            "synthesizer",
            "coder",
            "simplifier",
            "scrutinizer",
            "shepherd",
            "validator",
        ),
        skills=(
            "accessibility",
            "agent-teams",
            "frontend-design",
            "implementation-patterns",
            "self-review",
        ),
    ),
    PluginDefinition(
        name="devflow-code-review",
        description="Comprehensive code review",
        commands=("/code-review",),
        agents=("git", "reviewer", "synthesizer"),
        skills=(
            "accessibility",
            "agent-teams",
            "architecture-patterns",
            "complexity-patterns",
            "consistency-patterns",
            "database-patterns",
            "dependencies-patterns",
            "documentation-patterns",
            "frontend-design",
            "performance-patterns",
            "react",
            "regression-patterns",
            "review-methodology",
            "security-patterns",
            "test-patterns",
        ),
    ),
    PluginDefinition(
        name="devflow-resolve",
        description="Process and fix review issues",
        commands=("/resolve",),
        agents=("git", "resolver", "simplifier"),
        skills=("agent-teams", "implementation-patterns", "security-patterns"),
    ),
    PluginDefinition(
        name="devflow-debug",
        description="Debugging with competing hypotheses",
        commands=("/debug",),
        agents=("git",),
        skills=("agent-teams", "git-safety"),
    ),
    PluginDefinition(
        name="devflow-self-review",
        description="Self-review workflow (Simplifier + Scrutinizer)",
        commands=("/self-review",),
        agents=("simplifier", "scrutinizer", "validator"),
        skills=("self-review", "core-patterns"),
    ),
    PluginDefinition(
        name="devflow-audit-claude",
        description="Audit CLAUDE.md files against Anthropic best practices",
        commands=("/audit-claude",),
        agents=("claude-md-auditor",),
        optional=True,
    ),
)

# Command files from older releases, purged on install
LEGACY_COMMAND_NAMES: tuple[str, ...] = ("review",)

# Skill directories from older releases, purged on full uninstall
LEGACY_SKILL_NAMES: tuple[str, ...] = (
    "devflow-core-patterns",
    "devflow-review-methodology",
    "devflow-docs-framework",
    "devflow-git-safety",
    "devflow-github-patterns",
    "devflow-implementation-patterns",
    "devflow-codebase-navigation",
    "devflow-test-design",
    "devflow-code-smell",
    "devflow-commit",
    "devflow-pull-request",
    "devflow-input-validation",
    "devflow-self-review",
    "devflow-typescript",
    "devflow-react",
    "devflow-architecture-patterns",
    "devflow-complexity-patterns",
    "devflow-consistency-patterns",
    "devflow-database-patterns",
    "devflow-dependencies-patterns",
    "devflow-documentation-patterns",
    "devflow-performance-patterns",
    "devflow-regression-patterns",
    "devflow-security-patterns",
    "devflow-tests-patterns",
    "devflow-pattern-check",
    "devflow-error-handling",
    "devflow-debug",
    "devflow-accessibility",
    "devflow-frontend-design",
    "devflow-agent-teams",
    # Unprefixed names from pre-1.0 installs
    "codebase-navigation",
    "test-design",
    "code-smell",
    "commit",
    "pull-request",
    "tests-patterns",
)


class PluginRegistry:
    """An ordered, immutable collection of plugin definitions."""

    def __init__(self, plugins: Iterable[PluginDefinition]):
        """Initialize the registry.

        Args:
            plugins: Plugin definitions in registry order

        Raises:
            ConfigError: If two plugins share a name
        """
        self._plugins = tuple(plugins)

        seen: set[str] = set()
        for plugin in self._plugins:
            if plugin.name in seen:
                raise ConfigError(f"Duplicate plugin name in registry: {plugin.name}")
            seen.add(plugin.name)

    @classmethod
    def default(cls) -> PluginRegistry:
        """Get the built-in DevFlow registry."""
        return cls(DEVFLOW_PLUGINS)

    @classmethod
    def load(cls, path: Path) -> PluginRegistry:
        """Load a registry from a plugins.yaml file.

        Raises:
            ConfigError: If the file is missing or invalid
        """
        return cls(load_registry_file(path))

    @property
    def plugins(self) -> tuple[PluginDefinition, ...]:
        return self._plugins

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._plugins]

    def __iter__(self) -> Iterator[PluginDefinition]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self._plugins)

    def get(self, name: str) -> PluginDefinition | None:
        """Get a plugin by name."""
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        return None

    def all_skill_names(self) -> list[str]:
        """Unique skill names across all plugins, in registry order."""
        return list(dict.fromkeys(s for p in self._plugins for s in p.skills))

    def all_agent_names(self) -> list[str]:
        """Unique agent names across all plugins, in registry order."""
        return list(dict.fromkeys(a for p in self._plugins for a in p.agents))

    def select(self, names: Iterable[str]) -> list[PluginDefinition]:
        """Get the plugins with the given names, in registry order."""
        wanted = set(names)
        return [p for p in self._plugins if p.name in wanted]

    def plugins_to_install(self, selected_names: list[str]) -> list[PluginDefinition]:
        """Decide which plugins an install should cover.

        With no selection every non-optional plugin is installed. The core
        skills plugin is always included when anything is installed.

        Args:
            selected_names: Normalized plugin names, or an empty list

        Returns:
            Plugins to install, in registry order with core skills first
        """
        if selected_names:
            plugins = self.select(selected_names)
        else:
            plugins = [p for p in self._plugins if not p.optional]

        core = self.get(CORE_SKILLS_PLUGIN)
        if plugins and core is not None and core not in plugins:
            plugins = [core, *plugins]
        return plugins


def normalize_plugin_name(name: str) -> str:
    """Expand shorthand plugin names ("implement" -> "devflow-implement")."""
    name = name.strip()
    return name if name.startswith(PLUGIN_PREFIX) else f"{PLUGIN_PREFIX}{name}"


def parse_plugin_selection(
    selection: str,
    registry: PluginRegistry,
) -> tuple[list[str], list[str]]:
    """Parse a comma-separated plugin selection.

    Args:
        selection: e.g. "implement, devflow-code-review"
        registry: Registry to validate names against

    Returns:
        Tuple of (normalized names, names unknown to the registry)
    """
    selected = [normalize_plugin_name(part) for part in selection.split(",") if part.strip()]
    invalid = [name for name in selected if name not in registry]
    return selected, invalid
