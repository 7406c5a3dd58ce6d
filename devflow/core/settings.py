"""Post-install configuration: settings.json, CLAUDE.md and project files.

The pure transforms at the top operate on strings; the functions below
them read and write the files, and are driven by the installer.
"""

import logging
import re
from pathlib import Path
from typing import Literal

from devflow.config.parser import dump_settings, parse_settings
from devflow.utils.filesystem import (
    create_file_exclusive,
    ensure_directory,
    read_text_file,
    read_text_if_exists,
    write_text_file,
)

logger = logging.getLogger("devflow.settings")

TEAMS_ENV_VAR = "CLAUDE_CODE_EXPERIMENTAL_AGENT_TEAMS"
GITIGNORE_ENTRIES = [".claude/", ".devflow/"]
GITIGNORE_HEADER = "# DevFlow local installation"
DOCS_SUBDIRECTORIES = [Path("status") / "compact", Path("reviews"), Path("releases")]

_DEVFLOW_DIR_PLACEHOLDER = re.compile(r"\$\{DEVFLOW_DIR\}")

SettingsOutcome = Literal["created", "updated", "overridden", "kept", "skipped"]


# =============================================================================
# Pure transforms
# =============================================================================


def substitute_settings_template(template: str, devflow_dir: Path | str) -> str:
    """Replace every ``${DEVFLOW_DIR}`` placeholder in a settings template."""
    return _DEVFLOW_DIR_PLACEHOLDER.sub(lambda _: str(devflow_dir), template)


def apply_teams_config(settings_json: str) -> str:
    """Enable agent teams: set teammateMode and the experimental env var."""
    settings = parse_settings(settings_json)
    settings["teammateMode"] = "auto"
    env = settings.setdefault("env", {})
    env[TEAMS_ENV_VAR] = "1"
    return dump_settings(settings)


def strip_teams_config(settings_json: str) -> str:
    """Disable agent teams: drop teammateMode and the experimental env var."""
    settings = parse_settings(settings_json)
    settings.pop("teammateMode", None)
    env = settings.get("env")
    if isinstance(env, dict):
        env.pop(TEAMS_ENV_VAR, None)
        if not env:
            del settings["env"]
    return dump_settings(settings)


def compute_gitignore_append(existing_content: str, entries: list[str]) -> list[str]:
    """Compute which entries need appending to a .gitignore file.

    An entry counts as present when any line equals it after trimming.

    Args:
        existing_content: Current .gitignore text (may be empty)
        entries: Lines that must be present

    Returns:
        Entries not already present, in input order
    """
    existing_lines = {line.strip() for line in existing_content.split("\n")}
    return [entry for entry in entries if entry not in existing_lines]


def render_gitignore(existing_content: str, lines_to_add: list[str]) -> str:
    """Append lines under the DevFlow header to .gitignore text."""
    block = "\n".join([GITIGNORE_HEADER, *lines_to_add]) + "\n"
    if not existing_content:
        return block
    return f"{existing_content.rstrip()}\n\n{block}"


# =============================================================================
# File effects
# =============================================================================


def install_settings(
    settings_path: Path,
    template_path: Path,
    devflow_dir: Path,
    teams_enabled: bool = False,
    override: bool = False,
) -> SettingsOutcome:
    """Install or update settings.json from the DevFlow template.

    - No settings.json yet: the rendered template is written.
    - Existing settings with hooks: only the agent-teams toggle is applied.
    - Existing settings without hooks: replaced only when ``override`` is set.

    Args:
        settings_path: Target settings.json
        template_path: Template with ``${DEVFLOW_DIR}`` placeholders
        devflow_dir: Value substituted into the template
        teams_enabled: Whether agent teams should be configured
        override: Replace existing settings that have no hooks

    Returns:
        What happened to the settings file

    Raises:
        ConfigurationParseError: If the template or existing settings are malformed
        OSError: If a file cannot be read or written
    """
    if not template_path.exists():
        logger.info("No settings template at %s, skipping settings", template_path)
        return "skipped"

    content = substitute_settings_template(read_text_file(template_path), devflow_dir)
    content = apply_teams_config(content) if teams_enabled else strip_teams_config(content)

    existing = read_text_if_exists(settings_path)
    if existing is None:
        write_text_file(settings_path, content)
        return "created"

    if parse_settings(existing).get("hooks") is not None:
        updated = apply_teams_config(existing) if teams_enabled else strip_teams_config(existing)
        if updated != existing:
            write_text_file(settings_path, updated)
        return "updated"

    if override:
        write_text_file(settings_path, content)
        return "overridden"

    logger.warning("Settings exist without hooks. Use --override-settings to replace them.")
    return "kept"


def install_claude_md(claude_dir: Path, source_path: Path) -> bool:
    """Create CLAUDE.md from the template unless one already exists.

    Returns:
        True if the file was created
    """
    if not source_path.exists():
        logger.info("No CLAUDE.md template at %s", source_path)
        return False
    created = create_file_exclusive(claude_dir / "CLAUDE.md", read_text_file(source_path))
    if not created:
        logger.info("CLAUDE.md exists - keeping your configuration")
    return created


def install_claudeignore(git_root: Path, template_path: Path) -> bool:
    """Create .claudeignore at the repository root unless one exists.

    Returns:
        True if the file was created
    """
    if not template_path.exists():
        logger.info("No .claudeignore template at %s", template_path)
        return False
    return create_file_exclusive(git_root / ".claudeignore", read_text_file(template_path))


def update_gitignore(git_root: Path, entries: list[str] | None = None) -> list[str]:
    """Ensure DevFlow directories are ignored by git.

    Returns:
        The lines that were appended
    """
    gitignore_path = git_root / ".gitignore"
    existing = read_text_if_exists(gitignore_path) or ""
    lines_to_add = compute_gitignore_append(existing, entries or GITIGNORE_ENTRIES)
    if lines_to_add:
        write_text_file(gitignore_path, render_gitignore(existing, lines_to_add))
    return lines_to_add


def create_docs_structure(project_dir: Path) -> Path:
    """Create the .docs/ tree DevFlow commands write their artifacts to."""
    docs_dir = project_dir / ".docs"
    for subdirectory in DOCS_SUBDIRECTORIES:
        ensure_directory(docs_dir / subdirectory)
    return docs_dir
