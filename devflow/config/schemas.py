"""Pydantic schemas for DevFlow data.

This module defines the data models for:
- the plugin registry (built-in or plugins.yaml)
- hook entries written into Claude Code's settings.json
- resolved installation paths
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Common Types
# =============================================================================

Scope = Literal["user", "local"]
PlatformOS = Literal["windows", "linux", "macos"]
Shell = Literal["zsh", "bash", "fish", "powershell", "unknown"]


# =============================================================================
# Plugin Registry Models
# =============================================================================


class PluginDefinition(BaseModel):
    """A plugin in the registry.

    A plugin owns a set of slash commands, agents and skills. Agents and
    skills may be shared with other plugins; commands never are.
    Instances are immutable once loaded.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    commands: tuple[str, ...] = ()
    agents: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    optional: bool = False  # Not installed by default, needs explicit selection

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Plugin name must not be empty")
        return v

    @field_validator("commands", "agents", "skills")
    @classmethod
    def validate_asset_names(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for item in v:
            if not item or not item.strip():
                raise ValueError("Asset names must be non-empty strings")
        return v


class RegistryFile(BaseModel):
    """Schema for a plugins.yaml registry file."""

    plugins: list[PluginDefinition] = Field(default_factory=list)


# =============================================================================
# Claude Settings Models
# =============================================================================


class HookEntry(BaseModel):
    """A single hook command registered in settings.json."""

    type: str = "command"
    command: str
    timeout: int | None = None


class HookMatcher(BaseModel):
    """A matcher holding an ordered list of hook entries."""

    hooks: list[HookEntry] = Field(default_factory=list)


# =============================================================================
# Installation Models
# =============================================================================


class InstallationPaths(BaseModel):
    """Target directories for one installation scope."""

    claude_dir: Path
    devflow_dir: Path
    git_root: Path | None = None

    @property
    def settings_path(self) -> Path:
        return self.claude_dir / "settings.json"

    @property
    def commands_dir(self) -> Path:
        return self.claude_dir / "commands" / "devflow"

    @property
    def agents_dir(self) -> Path:
        return self.claude_dir / "agents" / "devflow"

    @property
    def skills_dir(self) -> Path:
        return self.claude_dir / "skills"

    @property
    def scripts_dir(self) -> Path:
        return self.devflow_dir / "scripts"


class SafeDeleteInfo(BaseModel):
    """Trash command available on a platform, with an install hint."""

    command: str | None = None
    install_hint: str | None = None
