"""Configuration file parsing utilities."""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devflow.config.schemas import PluginDefinition, RegistryFile


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class ConfigurationParseError(ConfigError):
    """Host configuration (settings.json) is not valid JSON or has a bad shape."""


def parse_settings(settings_json: str) -> dict[str, Any]:
    """Parse a settings.json document.

    Args:
        settings_json: Raw document text

    Returns:
        The top-level JSON object

    Raises:
        ConfigurationParseError: If the text is not a JSON object, or its
            ``hooks`` field is present but not an object
    """
    try:
        settings = json.loads(settings_json)
    except json.JSONDecodeError as e:
        raise ConfigurationParseError(f"Invalid JSON in settings: {e}") from e

    if not isinstance(settings, dict):
        raise ConfigurationParseError("Settings must be a JSON object")

    hooks = settings.get("hooks")
    if hooks is not None and not isinstance(hooks, dict):
        raise ConfigurationParseError("Settings 'hooks' must be a JSON object")

    return settings


def dump_settings(settings: dict[str, Any]) -> str:
    """Serialize settings with 2-space indentation and a trailing newline."""
    return json.dumps(settings, indent=2, ensure_ascii=False) + "\n"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_registry_file(path: Path) -> list[PluginDefinition]:
    """Load plugin definitions from a plugins.yaml file.

    Args:
        path: Path to the registry file

    Returns:
        Plugin definitions in file order

    Raises:
        ConfigError: If the file is missing or invalid
    """
    data = load_yaml(path)

    try:
        return RegistryFile.model_validate(data).plugins
    except ValidationError as e:
        raise ConfigError(f"Invalid plugin registry: {e}", path) from e
