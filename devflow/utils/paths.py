"""Resolution of Claude Code and DevFlow directories."""

import logging
import os
from pathlib import Path

from devflow.config.parser import ConfigError
from devflow.config.schemas import InstallationPaths, Scope
from devflow.utils.platform import get_home_directory

logger = logging.getLogger("devflow.paths")


def _directory_override(env_var: str) -> Path | None:
    """Read an absolute directory override from the environment."""
    value = os.environ.get(env_var)
    if not value:
        return None

    path = Path(value)
    if not path.is_absolute():
        raise ConfigError(f"{env_var} must be an absolute path")

    home = get_home_directory()
    if not path.is_relative_to(home):
        logger.warning("%s is outside home directory. Ensure this is intentional.", env_var)

    return path


def get_claude_directory() -> Path:
    """Get the Claude Code directory.

    Priority: CLAUDE_CODE_DIR env var > ~/.claude

    Raises:
        ConfigError: If CLAUDE_CODE_DIR is not absolute
    """
    return _directory_override("CLAUDE_CODE_DIR") or get_home_directory() / ".claude"


def get_devflow_directory() -> Path:
    """Get the DevFlow directory.

    Priority: DEVFLOW_DIR env var > ~/.devflow

    Raises:
        ConfigError: If DEVFLOW_DIR is not absolute
    """
    return _directory_override("DEVFLOW_DIR") or get_home_directory() / ".devflow"


def get_installation_paths(scope: Scope, git_root: Path | None = None) -> InstallationPaths:
    """Get installation paths for a scope.

    Args:
        scope: "user" for home-based directories, "local" for the repository
        git_root: Repository root, required for local scope

    Returns:
        InstallationPaths for the scope

    Raises:
        ConfigError: If local scope is requested outside a git repository
    """
    if scope == "user":
        return InstallationPaths(
            claude_dir=get_claude_directory(),
            devflow_dir=get_devflow_directory(),
        )

    if git_root is None:
        raise ConfigError(
            'Local scope requires a git repository. Run "git init" first or use --scope user'
        )
    return InstallationPaths(
        claude_dir=git_root / ".claude",
        devflow_dir=git_root / ".devflow",
        git_root=git_root,
    )
