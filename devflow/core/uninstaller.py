"""Plugin uninstallation orchestrator.

Uninstall mirrors installation. A full uninstall removes every DevFlow-owned
directory and hook. A selective uninstall removes only the assets that no
remaining plugin still declares, as computed by the resolver.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from devflow.config.schemas import InstallationPaths, PluginDefinition
from devflow.core.hooks import AMBIENT_HOOKS, MEMORY_HOOKS
from devflow.core.installer import InstallError, disable_hooks
from devflow.core.registry import LEGACY_SKILL_NAMES, PluginRegistry
from devflow.core.resolver import AssetRemoval, command_file_name, compute_assets_to_remove
from devflow.utils.filesystem import remove_directory, remove_file

logger = logging.getLogger("devflow.uninstaller")


class UninstallError(InstallError):
    """Error during uninstallation, naming the step that failed."""


@dataclass
class UninstallSummary:
    """Summary of an uninstallation operation."""

    full: bool
    removed_plugins: list[str] = field(default_factory=list)
    removed: AssetRemoval = field(default_factory=AssetRemoval)
    hooks_removed: list[str] = field(default_factory=list)
    devflow_dir_removed: bool = False


def is_devflow_installed(claude_dir: Path) -> bool:
    """Check whether DevFlow commands are installed under a Claude directory."""
    return (claude_dir / "commands" / "devflow").is_dir()


class PluginUninstaller:
    """Orchestrates plugin removal for one installation scope."""

    def __init__(self, paths: InstallationPaths, registry: PluginRegistry):
        self.paths = paths
        self.registry = registry

    def uninstall(self, selected: Sequence[PluginDefinition] | None = None) -> UninstallSummary:
        """Uninstall plugins.

        Selecting every plugin in the registry is the same as a full
        uninstall. An empty selection removes nothing.

        Args:
            selected: Plugins to remove, or None to remove everything

        Returns:
            UninstallSummary describing what was removed

        Raises:
            UninstallError: If a filesystem step fails
            ConfigurationParseError: If settings.json is malformed
        """
        if selected is None or (
            selected and {p.name for p in selected} >= set(self.registry.names)
        ):
            return self._uninstall_all()
        return self._uninstall_selected(selected)

    @contextmanager
    def _step(self, step: str) -> Iterator[None]:
        try:
            yield
        except OSError as e:
            logger.error("Uninstall step '%s' failed: %s", step, e)
            raise UninstallError(f"Uninstall step '{step}' failed: {e}", step=step) from e

    def _uninstall_all(self) -> UninstallSummary:
        logger.info("Removing all DevFlow plugins from %s", self.paths.claude_dir)
        summary = UninstallSummary(full=True, removed_plugins=self.registry.names)

        with self._step("commands"):
            remove_directory(self.paths.commands_dir)
        with self._step("agents"):
            remove_directory(self.paths.agents_dir)

        with self._step("skills"):
            for skill in [*self.registry.all_skill_names(), *LEGACY_SKILL_NAMES, "devflow"]:
                if remove_directory(self.paths.skills_dir / skill):
                    summary.removed.skills.append(skill)

        with self._step("devflow-dir"):
            summary.devflow_dir_removed = remove_directory(self.paths.devflow_dir)

        with self._step("hooks"):
            for family in (MEMORY_HOOKS, AMBIENT_HOOKS):
                if disable_hooks(self.paths.settings_path, family):
                    summary.hooks_removed.append(family.name)

        summary.removed.commands = [
            command for plugin in self.registry for command in plugin.commands
        ]
        summary.removed.agents = self.registry.all_agent_names()
        return summary

    def _uninstall_selected(self, selected: Sequence[PluginDefinition]) -> UninstallSummary:
        removal = compute_assets_to_remove(selected, self.registry.plugins)
        summary = UninstallSummary(
            full=False,
            removed_plugins=[p.name for p in selected],
            removed=removal,
        )
        logger.info(
            "Removing %s: %d command(s), %d agent(s), %d skill(s)",
            ", ".join(summary.removed_plugins),
            len(removal.commands),
            len(removal.agents),
            len(removal.skills),
        )

        with self._step("commands"):
            for command in removal.commands:
                remove_file(self.paths.commands_dir / command_file_name(command))
        with self._step("agents"):
            for agent in removal.agents:
                remove_file(self.paths.agents_dir / f"{agent}.md")
        with self._step("skills"):
            for skill in removal.skills:
                remove_directory(self.paths.skills_dir / skill)

        return summary
