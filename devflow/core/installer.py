"""Plugin installation orchestrator.

This module contains the PluginInstaller which copies plugin assets from a
DevFlow distribution into Claude Code's directories and applies the extras
plugins cannot handle themselves (settings, hooks, project files).

Asset ownership is decided up front by the resolver: a skill or agent shared
by several plugins is copied once, from the first plugin that declares it.
There is no rollback. Every step is idempotent, so re-running an install
after a failure converges to the same state.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from devflow.config.schemas import InstallationPaths, PlatformOS, PluginDefinition, Shell
from devflow.core.hooks import AMBIENT_HOOKS, MEMORY_HOOKS, HookFamily
from devflow.core.registry import LEGACY_COMMAND_NAMES, PluginRegistry
from devflow.core.resolver import AssetMaps, build_asset_maps, command_file_name
from devflow.core.safe_delete import SafeDeleteResult, enable_safe_delete
from devflow.core.settings import (
    SettingsOutcome,
    create_docs_structure,
    install_claude_md,
    install_claudeignore,
    install_settings,
    update_gitignore,
)
from devflow.utils.filesystem import (
    chmod_recursive,
    copy_directory,
    copy_file,
    ensure_directory,
    read_text_if_exists,
    remove_directory,
    remove_file,
    write_text_file,
)

logger = logging.getLogger("devflow.installer")

SCRIPT_MODE = 0o755


class InstallError(Exception):
    """Error during installation, naming the step that failed."""

    def __init__(self, message: str, step: str, plugin_name: str | None = None):
        self.step = step
        self.plugin_name = plugin_name
        super().__init__(message)


@dataclass
class InstallOptions:
    """Extras requested for an installation."""

    teams: bool = False
    override_settings: bool = False
    memory: bool = False
    ambient: bool = False
    safe_delete: bool = False
    skip_docs: bool = False
    project_dir: Path | None = None  # Where .docs/ is created (defaults to cwd)
    git_root: Path | None = None  # Repository that receives .claudeignore
    shell: Shell = "unknown"
    os_name: PlatformOS = "linux"
    home: Path | None = None
    user_profile: Path | None = None  # Windows USERPROFILE for the PowerShell profile


@dataclass
class InstallResult:
    """Assets installed for one plugin."""

    plugin_name: str
    commands: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    deduplicated: list[str] = field(default_factory=list)  # Owned by an earlier plugin
    missing: list[str] = field(default_factory=list)  # Declared but absent from source


@dataclass
class InstallSummary:
    """Summary of an installation operation."""

    full: bool
    results: list[InstallResult] = field(default_factory=list)
    asset_maps: AssetMaps = field(default_factory=AssetMaps)
    scripts_installed: bool = False
    settings: SettingsOutcome = "skipped"
    hooks_enabled: list[str] = field(default_factory=list)
    created_files: list[Path] = field(default_factory=list)
    gitignore_entries: list[str] = field(default_factory=list)
    safe_delete: SafeDeleteResult | None = None

    @property
    def plugin_names(self) -> list[str]:
        return [r.plugin_name for r in self.results]

    @property
    def commands(self) -> list[str]:
        return [c for r in self.results for c in r.commands]

    @property
    def missing(self) -> list[str]:
        return [m for r in self.results for m in r.missing]


class PluginInstaller:
    """Orchestrates plugin installation.

    A full install (no explicit plugin selection) first purges every
    DevFlow-owned command, agent and skill directory so assets from an
    older registry shape cannot survive. A partial install leaves existing
    assets alone, since plugins that are not being installed may use them.
    """

    def __init__(
        self,
        paths: InstallationPaths,
        source_root: Path,
        registry: PluginRegistry,
        options: InstallOptions | None = None,
    ):
        """Initialize the installer.

        Args:
            paths: Target directories for the chosen scope
            source_root: DevFlow distribution root (plugins/, scripts/, src/)
            registry: Full plugin registry
            options: Requested extras
        """
        self.paths = paths
        self.source_root = source_root
        self.registry = registry
        self.options = options or InstallOptions()

    @property
    def plugins_dir(self) -> Path:
        return self.source_root / "plugins"

    @property
    def scripts_source(self) -> Path:
        return self.source_root / "scripts"

    @property
    def settings_template(self) -> Path:
        return self.source_root / "src" / "templates" / "settings.json"

    @property
    def claudeignore_template(self) -> Path:
        return self.source_root / "src" / "templates" / "claudeignore.template"

    @property
    def claude_md_template(self) -> Path:
        return self.source_root / "src" / "claude" / "CLAUDE.md"

    def install(self, plugins: Sequence[PluginDefinition], full: bool) -> InstallSummary:
        """Install plugins and the requested extras.

        Args:
            plugins: Plugins to install, in installation order
            full: True for a full install (purge before copying)

        Returns:
            InstallSummary describing what was installed

        Raises:
            InstallError: If a filesystem step fails
            ConfigurationParseError: If settings.json is malformed
        """
        logger.info(
            "Starting %s installation of %d plugin(s)", "full" if full else "partial", len(plugins)
        )
        summary = InstallSummary(full=full, asset_maps=build_asset_maps(plugins))

        with self._step("prepare"):
            ensure_directory(self.paths.claude_dir)

        with self._step("purge"):
            if full:
                self._purge_previous_install()
            else:
                self._remove_legacy_commands()

        for plugin in plugins:
            with self._step("copy", plugin.name):
                summary.results.append(self._install_plugin(plugin, summary.asset_maps))

        with self._step("scripts"):
            summary.scripts_installed = self._install_scripts()

        self._install_extras(summary)

        logger.info(
            "Installed %d unique skill(s) and %d unique agent(s)",
            len(summary.asset_maps.skills),
            len(summary.asset_maps.agents),
        )
        return summary

    @contextmanager
    def _step(self, step: str, plugin_name: str | None = None) -> Iterator[None]:
        try:
            yield
        except OSError as e:
            target = f" ({plugin_name})" if plugin_name else ""
            logger.error("Install step '%s'%s failed: %s", step, target, e)
            raise InstallError(
                f"Install step '{step}'{target} failed: {e}", step=step, plugin_name=plugin_name
            ) from e

    def _purge_previous_install(self) -> None:
        """Remove every DevFlow-owned asset directory before a full install."""
        remove_directory(self.paths.commands_dir)
        remove_directory(self.paths.agents_dir)
        for skill in self.registry.all_skill_names():
            remove_directory(self.paths.skills_dir / skill)
        logger.debug("Purged previous installation from %s", self.paths.claude_dir)

    def _remove_legacy_commands(self) -> None:
        for name in LEGACY_COMMAND_NAMES:
            if remove_file(self.paths.commands_dir / f"{name}.md"):
                logger.debug("Removed legacy command %s", name)

    def _install_plugin(self, plugin: PluginDefinition, maps: AssetMaps) -> InstallResult:
        """Copy one plugin's commands and the agents and skills it owns."""
        result = InstallResult(plugin_name=plugin.name)
        source_dir = self.plugins_dir / plugin.name

        commands_source = source_dir / "commands"
        if commands_source.is_dir():
            for command_file in sorted(commands_source.iterdir()):
                if command_file.is_file():
                    copy_file(command_file, ensure_directory(self.paths.commands_dir))
        for command in plugin.commands:
            if (commands_source / command_file_name(command)).is_file():
                result.commands.append(command)
            else:
                result.missing.append(f"command:{command}")

        for agent in plugin.agents:
            if maps.agent_owner(agent) != plugin.name:
                result.deduplicated.append(f"agent:{agent}")
                continue
            agent_source = source_dir / "agents" / f"{agent}.md"
            if not agent_source.is_file():
                logger.warning("Agent %s not found in %s", agent, source_dir)
                result.missing.append(f"agent:{agent}")
                continue
            copy_file(agent_source, ensure_directory(self.paths.agents_dir))
            result.agents.append(agent)

        for skill in plugin.skills:
            if maps.skill_owner(skill) != plugin.name:
                result.deduplicated.append(f"skill:{skill}")
                continue
            skill_source = source_dir / "skills" / skill
            if not skill_source.is_dir():
                logger.warning("Skill %s not found in %s", skill, source_dir)
                result.missing.append(f"skill:{skill}")
                continue
            copy_directory(skill_source, self.paths.skills_dir / skill)
            result.skills.append(skill)

        logger.debug(
            "Installed %s: %d command(s), %d agent(s), %d skill(s)",
            plugin.name,
            len(result.commands),
            len(result.agents),
            len(result.skills),
        )
        return result

    def _install_scripts(self) -> bool:
        """Copy hook and helper scripts into the DevFlow directory."""
        if not self.scripts_source.is_dir():
            logger.info("No scripts directory at %s", self.scripts_source)
            return False
        copy_directory(self.scripts_source, self.paths.scripts_dir)
        chmod_recursive(self.paths.scripts_dir, SCRIPT_MODE)
        return True

    def _install_extras(self, summary: InstallSummary) -> None:
        options = self.options

        with self._step("settings"):
            summary.settings = install_settings(
                self.paths.settings_path,
                self.settings_template,
                self.paths.devflow_dir,
                teams_enabled=options.teams,
                override=options.override_settings,
            )

        for enabled, family in ((options.memory, MEMORY_HOOKS), (options.ambient, AMBIENT_HOOKS)):
            if enabled:
                with self._step(f"{family.name}-hooks"):
                    if enable_hooks(self.paths.settings_path, family, self.paths.devflow_dir):
                        summary.hooks_enabled.append(family.name)

        with self._step("claude-md"):
            if install_claude_md(self.paths.claude_dir, self.claude_md_template):
                summary.created_files.append(self.paths.claude_dir / "CLAUDE.md")

        git_root = self.paths.git_root or options.git_root
        if git_root is not None:
            with self._step("claudeignore"):
                if install_claudeignore(git_root, self.claudeignore_template):
                    summary.created_files.append(git_root / ".claudeignore")

        if self.paths.git_root is not None:
            with self._step("gitignore"):
                summary.gitignore_entries = update_gitignore(self.paths.git_root)

        if not options.skip_docs:
            with self._step("docs"):
                create_docs_structure(options.project_dir or Path.cwd())

        if options.safe_delete:
            with self._step("safe-delete"):
                summary.safe_delete = enable_safe_delete(
                    options.shell,
                    options.os_name,
                    options.home or Path.home(),
                    options.user_profile,
                )


def enable_hooks(settings_path: Path, family: HookFamily, devflow_dir: Path) -> bool:
    """Register a hook family in a settings file.

    A missing settings file is treated as ``{}``. The file is only written
    when the document changed.

    Returns:
        True if the file was written
    """
    current = read_text_if_exists(settings_path) or "{}"
    updated = family.add(current, devflow_dir)
    if updated == current:
        return False
    write_text_file(settings_path, updated)
    logger.info("Enabled %s hooks in %s", family.name, settings_path)
    return True


def disable_hooks(settings_path: Path, family: HookFamily) -> bool:
    """Unregister a hook family from a settings file.

    Returns:
        True if the file was written
    """
    current = read_text_if_exists(settings_path)
    if current is None:
        return False
    updated = family.remove(current)
    if updated == current:
        return False
    write_text_file(settings_path, updated)
    logger.info("Disabled %s hooks in %s", family.name, settings_path)
    return True
