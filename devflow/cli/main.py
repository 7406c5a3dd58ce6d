"""Main CLI application for DevFlow."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from devflow import __version__
from devflow.config.parser import ConfigError
from devflow.config.schemas import InstallationPaths, Scope
from devflow.core.hooks import AMBIENT_HOOKS, MEMORY_HOOKS, HookFamily, infer_devflow_dir
from devflow.core.installer import (
    InstallError,
    InstallOptions,
    PluginInstaller,
    disable_hooks,
    enable_hooks,
)
from devflow.core.registry import PluginRegistry, parse_plugin_selection
from devflow.core.resolver import find_missing_sources
from devflow.core.safe_delete import (
    SafeDeleteResult,
    disable_safe_delete,
    enable_safe_delete,
    get_profile_path,
    get_safe_delete_info,
    has_safe_delete,
    is_already_installed,
)
from devflow.core.uninstaller import PluginUninstaller, is_devflow_installed
from devflow.utils.filesystem import read_text_if_exists
from devflow.utils.git import get_git_root
from devflow.utils.paths import get_installation_paths
from devflow.utils.platform import (
    detect_shell,
    get_home_directory,
    get_os,
    get_user_profile_directory,
)

# Create the main Typer app
app = typer.Typer(
    name="devflow",
    help="Agentic development toolkit installer for Claude Code",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the devflow package
logger = logging.getLogger("devflow")


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def get_registry(path: Path | None) -> PluginRegistry:
    """Get the plugin registry, exiting on invalid registry files."""
    if path is None:
        return PluginRegistry.default()
    try:
        return PluginRegistry.load(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_paths(scope: Scope) -> InstallationPaths:
    """Resolve installation paths for a scope, exiting on configuration errors."""
    git_root = get_git_root() if scope == "local" else None
    try:
        return get_installation_paths(scope, git_root)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def _single_action(enable: bool, disable: bool, status: bool) -> str:
    flags = {"enable": enable, "disable": disable, "status": status}
    chosen = [name for name, flag in flags.items() if flag]
    if len(chosen) != 1:
        print_error("Specify exactly one of --enable, --disable or --status")
        raise typer.Exit(1)
    return chosen[0]


ScopeOption = Annotated[
    str,
    typer.Option(
        "--scope",
        help="Installation scope: 'user' (home directory) or 'local' (git repository)",
    ),
]


def _validate_scope(scope: str) -> Scope:
    if scope not in ("user", "local"):
        print_error(f"Invalid scope: {scope}. Use 'user' or 'local'")
        raise typer.Exit(1)
    return scope  # type: ignore[return-value]


@app.callback()
def callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
) -> None:
    """DevFlow - agentic development toolkit for Claude Code."""
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show the DevFlow version."""
    console.print(f"devflow {__version__}")


@app.command()
def init(
    plugin: Annotated[
        str | None,
        typer.Option(
            "--plugin",
            "-p",
            help="Comma-separated plugins to install (e.g. 'implement,code-review')",
        ),
    ] = None,
    scope: ScopeOption = "user",
    source_dir: Annotated[
        Path | None,
        typer.Option(
            "--source-dir",
            envvar="DEVFLOW_SOURCE_DIR",
            help="DevFlow distribution directory (defaults to current directory)",
        ),
    ] = None,
    registry_file: Annotated[
        Path | None,
        typer.Option("--registry", help="Plugin registry YAML file"),
    ] = None,
    memory: Annotated[bool, typer.Option("--memory", help="Enable memory hooks")] = False,
    ambient: Annotated[bool, typer.Option("--ambient", help="Enable the ambient hook")] = False,
    safe_delete: Annotated[
        bool,
        typer.Option("--safe-delete", help="Redirect rm to the trash in your shell profile"),
    ] = False,
    teams: Annotated[bool, typer.Option("--teams", help="Enable agent teams")] = False,
    override_settings: Annotated[
        bool,
        typer.Option("--override-settings", help="Replace existing settings.json"),
    ] = False,
    skip_docs: Annotated[
        bool,
        typer.Option("--skip-docs", help="Don't create the .docs/ directory"),
    ] = False,
) -> None:
    """Install DevFlow plugins into Claude Code.

    Without --plugin every non-optional plugin is installed and previous
    DevFlow assets are purged first. With --plugin only the selected
    plugins (plus the core skills) are installed.
    """
    paths = get_paths(_validate_scope(scope))
    registry = get_registry(registry_file)
    source_root = (source_dir or Path.cwd()).resolve()

    selected: list[str] = []
    if plugin is not None:
        selected, invalid = parse_plugin_selection(plugin, registry)
        if not selected:
            print_error("No plugin names given to --plugin")
            raise typer.Exit(1)
        if invalid:
            print_error(f"Unknown plugin(s): {', '.join(invalid)}")
            console.print(f"Valid plugins: {', '.join(registry.names)}")
            raise typer.Exit(1)

    plugins = registry.plugins_to_install(selected)
    if not plugins:
        console.print("No plugins to install")
        return

    problems = find_missing_sources(plugins, source_root / "plugins")
    for problem in problems:
        print_warning(problem)

    options = InstallOptions(
        teams=teams,
        override_settings=override_settings,
        memory=memory,
        ambient=ambient,
        safe_delete=safe_delete,
        skip_docs=skip_docs,
        project_dir=paths.git_root or Path.cwd(),
        git_root=paths.git_root or get_git_root(),
        shell=detect_shell(),
        os_name=get_os(),
        home=get_home_directory(),
        user_profile=get_user_profile_directory(),
    )

    console.print(f"Installing {len(plugins)} plugin(s) to {paths.claude_dir}...")
    try:
        installer = PluginInstaller(paths, source_root, registry, options)
        summary = installer.install(plugins, full=not selected)
    except (ConfigError, InstallError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    for result in summary.results:
        print_success(f"{result.plugin_name}")
        for missing in result.missing:
            print_warning(f"  {missing} not found in source")

    if summary.settings == "kept":
        print_warning("settings.json exists without hooks. Use --override-settings to replace it")
    elif summary.settings != "skipped":
        print_success(f"Settings {summary.settings}: {paths.settings_path}")

    for family in summary.hooks_enabled:
        print_success(f"Enabled {family} hooks")
    for created in summary.created_files:
        console.print(f"  Created: {created}")
    if summary.gitignore_entries:
        console.print(f"  Added to .gitignore: {', '.join(summary.gitignore_entries)}")

    if summary.safe_delete is not None:
        _report_safe_delete(summary.safe_delete)

    console.print()
    console.print(f"[dim]Commands: {', '.join(summary.commands) or 'none'}[/dim]")


@app.command()
def uninstall(
    plugin: Annotated[
        str | None,
        typer.Option(
            "--plugin",
            "-p",
            help="Comma-separated plugins to remove (default: everything)",
        ),
    ] = None,
    scope: Annotated[
        str | None,
        typer.Option("--scope", help="Scope to uninstall from (default: auto-detect)"),
    ] = None,
    registry_file: Annotated[
        Path | None,
        typer.Option("--registry", help="Plugin registry YAML file"),
    ] = None,
) -> None:
    """Uninstall DevFlow plugins.

    Shared skills and agents are only removed when no remaining plugin
    still declares them.
    """
    registry = get_registry(registry_file)

    selected = None
    if plugin is not None:
        names, invalid = parse_plugin_selection(plugin, registry)
        if not names:
            print_error("No plugin names given to --plugin")
            raise typer.Exit(1)
        if invalid:
            print_error(f"Unknown plugin(s): {', '.join(invalid)}")
            raise typer.Exit(1)
        selected = registry.select(names)

    if scope is not None:
        scopes: list[Scope] = [_validate_scope(scope)]
    else:
        scopes = _detect_installed_scopes()
        if not scopes:
            console.print("No DevFlow installation found")
            return

    for target_scope in scopes:
        paths = get_paths(target_scope)
        try:
            summary = PluginUninstaller(paths, registry).uninstall(selected)
        except (ConfigError, InstallError) as e:
            print_error(str(e))
            raise typer.Exit(1) from e

        label = "all plugins" if summary.full else ", ".join(summary.removed_plugins)
        print_success(f"Uninstalled {label} ({target_scope} scope)")
        if summary.removed.is_empty and not summary.full:
            console.print("  [dim]All assets are still used by other plugins[/dim]")
        for family in summary.hooks_removed:
            console.print(f"  Removed {family} hooks")

        project_dir = paths.git_root or Path.cwd()
        for kept in (project_dir / ".docs", project_dir / ".claudeignore"):
            if kept.exists():
                console.print(f"  [dim]Kept {kept} (remove manually if no longer needed)[/dim]")


def _detect_installed_scopes() -> list[Scope]:
    scopes: list[Scope] = []
    try:
        if is_devflow_installed(get_installation_paths("user").claude_dir):
            scopes.append("user")
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    git_root = get_git_root()
    if git_root is not None and is_devflow_installed(git_root / ".claude"):
        scopes.append("local")
    return scopes


@app.command("list")
def list_plugins(
    registry_file: Annotated[
        Path | None,
        typer.Option("--registry", help="Plugin registry YAML file"),
    ] = None,
) -> None:
    """List available DevFlow plugins."""
    registry = get_registry(registry_file)

    table = Table(title="DevFlow Plugins")
    table.add_column("Plugin", style="cyan")
    table.add_column("Commands", style="green")
    table.add_column("Description")
    table.add_column("", style="dim")

    for plugin in registry:
        table.add_row(
            plugin.name,
            ", ".join(plugin.commands) or "(skills only)",
            plugin.description,
            "optional" if plugin.optional else "",
        )

    console.print(table)


def _run_hook_command(family: HookFamily, action: str, scope: Scope) -> None:
    paths = get_paths(scope)
    settings_path = paths.settings_path

    try:
        if action == "status":
            current = read_text_if_exists(settings_path) or "{}"
            count = family.count(current)
            if count == family.size:
                state = "enabled"
            elif count:
                state = "partial"
            else:
                state = "disabled"
            console.print(f"{family.name.capitalize()} hooks: {state} ({count}/{family.size})")
            return

        if action == "enable":
            devflow_dir = paths.devflow_dir
            if family is AMBIENT_HOOKS:
                current = read_text_if_exists(settings_path) or "{}"
                devflow_dir = infer_devflow_dir(current, devflow_dir)
            changed = enable_hooks(settings_path, family, devflow_dir)
            verb = "enabled"
        else:
            changed = disable_hooks(settings_path, family)
            verb = "disabled"
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    except OSError as e:
        print_error(f"Cannot update {settings_path}: {e}")
        raise typer.Exit(1) from e

    if changed:
        print_success(f"{family.name.capitalize()} hooks {verb}")
    else:
        console.print(f"{family.name.capitalize()} hooks already {verb}")


EnableOption = Annotated[bool, typer.Option("--enable", help="Register the hooks")]
DisableOption = Annotated[bool, typer.Option("--disable", help="Remove the hooks")]
StatusOption = Annotated[bool, typer.Option("--status", help="Show whether the hooks are set")]


@app.command()
def memory(
    enable: EnableOption = False,
    disable: DisableOption = False,
    status: StatusOption = False,
    scope: ScopeOption = "user",
) -> None:
    """Manage the session memory hooks (Stop, SessionStart, PreCompact)."""
    _run_hook_command(MEMORY_HOOKS, _single_action(enable, disable, status), _validate_scope(scope))


@app.command()
def ambient(
    enable: EnableOption = False,
    disable: DisableOption = False,
    status: StatusOption = False,
    scope: ScopeOption = "user",
) -> None:
    """Manage the ambient prompt hook (UserPromptSubmit)."""
    _run_hook_command(AMBIENT_HOOKS, _single_action(enable, disable, status), _validate_scope(scope))


def _report_safe_delete(result: SafeDeleteResult) -> None:
    if result.outcome == "installed":
        print_success(f"Safe-delete installed in {result.profile_path}")
        console.print("  Restart your shell or source the profile to activate it")
    elif result.outcome == "already-installed":
        console.print(f"Safe-delete already installed in {result.profile_path}")
    elif result.outcome == "missing-trash":
        print_warning("No trash command found")
        if result.install_hint:
            console.print(f"  Install it with: {result.install_hint}")
    else:
        print_warning("Safe-delete is not supported for your shell")


@app.command("safe-delete")
def safe_delete(
    enable: Annotated[bool, typer.Option("--enable", help="Install the rm override")] = False,
    disable: Annotated[bool, typer.Option("--disable", help="Remove the rm override")] = False,
    status: Annotated[bool, typer.Option("--status", help="Show whether it is installed")] = False,
) -> None:
    """Redirect rm to the trash in your shell profile."""
    action = _single_action(enable, disable, status)
    shell = detect_shell()
    os_name = get_os()
    home = get_home_directory()
    user_profile = get_user_profile_directory()

    try:
        if action == "enable":
            result = enable_safe_delete(shell, os_name, home, user_profile)
            _report_safe_delete(result)
            if result.outcome in ("missing-trash", "unsupported-shell"):
                raise typer.Exit(1)
            return

        if action == "disable":
            if disable_safe_delete(shell, os_name, home, user_profile):
                print_success("Safe-delete removed")
            else:
                console.print("Safe-delete is not installed")
            return
    except OSError as e:
        print_error(f"Cannot update shell profile: {e}")
        raise typer.Exit(1) from e

    profile_path = get_profile_path(shell, home, os_name, user_profile)
    if profile_path is None:
        print_warning(f"Unsupported shell: {shell}")
        return
    installed = is_already_installed(profile_path)
    console.print(f"Shell: {shell}")
    console.print(f"Profile: {profile_path}")
    console.print(f"Safe-delete: {'installed' if installed else 'not installed'}")
    if not has_safe_delete(os_name):
        hint = get_safe_delete_info(os_name).install_hint
        print_warning(f"Trash command not available{f' ({hint})' if hint else ''}")


if __name__ == "__main__":
    app()
