"""Asset resolver for DevFlow.

This module decides which plugin owns each shared skill and agent during
installation, and which assets are safe to delete when plugins are removed.
All functions are pure: they take plugin definitions and return new values.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from devflow.config.schemas import PluginDefinition


class UnknownAssetOwnerError(LookupError):
    """An asset has no owning plugin in the resolved ownership map.

    This indicates a registry integrity bug rather than a user error.
    """

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"No owning plugin for {kind} '{name}'")


@dataclass
class AssetMaps:
    """Ownership maps from asset name to the plugin that installs it."""

    skills: dict[str, str] = field(default_factory=dict)
    agents: dict[str, str] = field(default_factory=dict)

    def skill_owner(self, name: str) -> str:
        """Get the owning plugin of a skill.

        Raises:
            UnknownAssetOwnerError: If the skill is not in the map
        """
        try:
            return self.skills[name]
        except KeyError:
            raise UnknownAssetOwnerError("skill", name) from None

    def agent_owner(self, name: str) -> str:
        """Get the owning plugin of an agent.

        Raises:
            UnknownAssetOwnerError: If the agent is not in the map
        """
        try:
            return self.agents[name]
        except KeyError:
            raise UnknownAssetOwnerError("agent", name) from None


@dataclass
class AssetRemoval:
    """Assets that can be deleted without breaking a remaining plugin."""

    commands: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.commands or self.agents or self.skills)


def build_asset_maps(plugins: Sequence[PluginDefinition]) -> AssetMaps:
    """Build maps of unique assets to their source plugin.

    Each skill and agent is assigned to the first plugin (in input order)
    that declares it, so it is copied exactly once during installation.

    Args:
        plugins: Plugin definitions in installation order

    Returns:
        AssetMaps with skill and agent ownership
    """
    maps = AssetMaps()
    for plugin in plugins:
        for skill in plugin.skills:
            maps.skills.setdefault(skill, plugin.name)
        for agent in plugin.agents:
            maps.agents.setdefault(agent, plugin.name)
    return maps


def compute_assets_to_remove(
    selected_plugins: Sequence[PluginDefinition],
    all_plugins: Sequence[PluginDefinition],
) -> AssetRemoval:
    """Compute which assets to delete when removing plugins.

    A skill or agent is only removed when no plugin outside the selection
    still declares it. Commands are never shared, so every command of a
    selected plugin is removed.

    Args:
        selected_plugins: Plugins being removed
        all_plugins: The full registry

    Returns:
        AssetRemoval with deduplicated commands, agents and skills
    """
    selected_names = {p.name for p in selected_plugins}
    remaining = [p for p in all_plugins if p.name not in selected_names]

    retained_skills = {s for p in remaining for s in p.skills}
    retained_agents = {a for p in remaining for a in p.agents}

    commands: dict[str, None] = {}
    agents: dict[str, None] = {}
    skills: dict[str, None] = {}
    for plugin in selected_plugins:
        for command in plugin.commands:
            commands[command] = None
        for agent in plugin.agents:
            if agent not in retained_agents:
                agents[agent] = None
        for skill in plugin.skills:
            if skill not in retained_skills:
                skills[skill] = None

    return AssetRemoval(commands=list(commands), agents=list(agents), skills=list(skills))


def command_file_name(command: str) -> str:
    """Map a slash command to its file name ("/implement" -> "implement.md")."""
    return f"{command.lstrip('/')}.md"


def find_missing_sources(
    plugins: Sequence[PluginDefinition],
    plugins_dir: Path,
) -> list[str]:
    """Check that every declared asset exists in the distribution source.

    Args:
        plugins: Plugin definitions to check
        plugins_dir: Directory holding one sub-directory per plugin

    Returns:
        Human-readable problems, empty when the source tree is complete
    """
    problems: list[str] = []
    for plugin in plugins:
        plugin_dir = plugins_dir / plugin.name
        if not plugin_dir.is_dir():
            problems.append(f"{plugin.name}: plugin directory not found")
            continue

        for command in plugin.commands:
            if not (plugin_dir / "commands" / command_file_name(command)).is_file():
                problems.append(f"{plugin.name}: command '{command}' not found")
        for agent in plugin.agents:
            if not (plugin_dir / "agents" / f"{agent}.md").is_file():
                problems.append(f"{plugin.name}: agent '{agent}' not found")
        for skill in plugin.skills:
            if not (plugin_dir / "skills" / skill / "SKILL.md").is_file():
                problems.append(f"{plugin.name}: skill '{skill}' has no SKILL.md")
    return problems
