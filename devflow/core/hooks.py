"""Hook registration inside Claude Code's settings.json.

Hooks are grouped into families. Each family has one or more slots, and a
slot is one hook registration identified by a marker (the hook script's
file name) embedded in its ``command``. Presence is decided structurally by
that marker, never by position, so DevFlow hooks can coexist with and be
reordered among hooks the user registered.

All functions here are string-to-string transforms. When nothing needs to
change the input string is returned unchanged, which lets callers skip the
write entirely.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any

from devflow.config.parser import ConfigurationParseError, dump_settings, parse_settings
from devflow.config.schemas import HookEntry, HookMatcher

logger = logging.getLogger("devflow.hooks")


@dataclass(frozen=True)
class HookSlot:
    """One hook registration owned by DevFlow."""

    event: str
    marker: str
    timeout: int

    def command_for(self, devflow_dir: Path | str) -> str:
        """Build the hook command for an installation directory."""
        return os.path.join(str(devflow_dir), "scripts", "hooks", self.marker)

    def matches(self, hook: Any) -> bool:
        """Check whether a hook entry belongs to this slot."""
        if not isinstance(hook, dict):
            return False
        command = hook.get("command")
        return isinstance(command, str) and self.marker in command


def _event_matchers(hooks: dict[str, Any], event: str) -> list[Any]:
    matchers = hooks.get(event, [])
    if not isinstance(matchers, list):
        raise ConfigurationParseError(f"Settings 'hooks.{event}' must be a JSON array")
    return matchers


def _matcher_hooks(matcher: Any) -> list[Any]:
    if not isinstance(matcher, dict):
        return []
    hooks = matcher.get("hooks")
    return hooks if isinstance(hooks, list) else []


def _slot_present(hooks: dict[str, Any], slot: HookSlot) -> bool:
    return any(
        slot.matches(hook)
        for matcher in _event_matchers(hooks, slot.event)
        for hook in _matcher_hooks(matcher)
    )


class HookFamily:
    """A named group of hook slots that are enabled and disabled together."""

    def __init__(self, name: str, slots: tuple[HookSlot, ...]):
        self.name = name
        self.slots = slots

    @property
    def size(self) -> int:
        return len(self.slots)

    def count(self, settings_json: str) -> int:
        """Count how many of this family's slots are registered.

        Raises:
            ConfigurationParseError: If the settings are malformed
        """
        settings = parse_settings(settings_json)
        hooks = settings.get("hooks")
        if not hooks:
            return 0
        return sum(1 for slot in self.slots if _slot_present(hooks, slot))

    def has(self, settings_json: str) -> bool:
        """Check whether every slot of this family is registered."""
        return self.count(settings_json) == self.size

    def add(self, settings_json: str, devflow_dir: Path | str) -> str:
        """Register every missing slot.

        Slots that are already present are left exactly where they are, so
        a partially registered family is healed without duplicates.

        Args:
            settings_json: Current settings document
            devflow_dir: DevFlow installation directory holding scripts/hooks

        Returns:
            Updated document, or the input unchanged if all slots exist

        Raises:
            ConfigurationParseError: If the settings are malformed
        """
        settings = parse_settings(settings_json)
        hooks = settings.get("hooks") or {}

        missing = [slot for slot in self.slots if not _slot_present(hooks, slot)]
        if not missing:
            return settings_json

        settings["hooks"] = hooks
        for slot in missing:
            matcher = HookMatcher(
                hooks=[HookEntry(command=slot.command_for(devflow_dir), timeout=slot.timeout)]
            )
            hooks.setdefault(slot.event, []).append(matcher.model_dump(exclude_none=True))
            logger.debug("Registered %s hook %s", slot.event, slot.marker)

        return dump_settings(settings)

    def remove(self, settings_json: str) -> str:
        """Unregister every slot of this family.

        Hooks belonging to the family are dropped from their matchers; a
        matcher left with no hooks is dropped, an event left with no
        matchers is dropped, and ``hooks`` itself is dropped when empty.
        Unrelated hooks are preserved in order.

        Returns:
            Updated document, or the input unchanged if nothing matched

        Raises:
            ConfigurationParseError: If the settings are malformed
        """
        settings = parse_settings(settings_json)
        hooks = settings.get("hooks")
        if not hooks:
            return settings_json

        changed = False
        for slot in self.slots:
            if slot.event not in hooks:
                continue

            kept_matchers: list[Any] = []
            event_changed = False
            for matcher in _event_matchers(hooks, slot.event):
                entries = _matcher_hooks(matcher)
                kept = [hook for hook in entries if not slot.matches(hook)]
                if len(kept) == len(entries):
                    kept_matchers.append(matcher)
                    continue
                event_changed = True
                if kept:
                    kept_matchers.append({**matcher, "hooks": kept})

            if not event_changed:
                continue

            changed = True
            logger.debug("Removed %s hook %s", slot.event, slot.marker)
            if kept_matchers:
                hooks[slot.event] = kept_matchers
            else:
                del hooks[slot.event]

        if not changed:
            return settings_json

        if not hooks:
            del settings["hooks"]
        return dump_settings(settings)


MEMORY_HOOKS = HookFamily(
    "memory",
    (
        HookSlot(event="Stop", marker="stop-update-memory.sh", timeout=10),
        HookSlot(event="SessionStart", marker="session-start-memory.sh", timeout=10),
        HookSlot(event="PreCompact", marker="pre-compact-memory.sh", timeout=10),
    ),
)

AMBIENT_HOOKS = HookFamily(
    "ambient",
    (HookSlot(event="UserPromptSubmit", marker="ambient-prompt.sh", timeout=5),),
)

HOOK_FAMILIES: dict[str, HookFamily] = {
    MEMORY_HOOKS.name: MEMORY_HOOKS,
    AMBIENT_HOOKS.name: AMBIENT_HOOKS,
}


def add_memory_hooks(settings_json: str, devflow_dir: Path | str) -> str:
    """Add the Stop, SessionStart and PreCompact memory hooks."""
    return MEMORY_HOOKS.add(settings_json, devflow_dir)


def remove_memory_hooks(settings_json: str) -> str:
    """Remove all memory hooks, preserving everything else."""
    return MEMORY_HOOKS.remove(settings_json)


def has_memory_hooks(settings_json: str) -> bool:
    """Check whether all three memory hooks are registered."""
    return MEMORY_HOOKS.has(settings_json)


def count_memory_hooks(settings_json: str) -> int:
    """Count registered memory hooks (0-3)."""
    return MEMORY_HOOKS.count(settings_json)


def add_ambient_hook(settings_json: str, devflow_dir: Path | str) -> str:
    """Add the ambient UserPromptSubmit hook."""
    return AMBIENT_HOOKS.add(settings_json, devflow_dir)


def remove_ambient_hook(settings_json: str) -> str:
    """Remove the ambient hook, preserving other UserPromptSubmit hooks."""
    return AMBIENT_HOOKS.remove(settings_json)


def has_ambient_hook(settings_json: str) -> bool:
    """Check whether the ambient hook is registered."""
    return AMBIENT_HOOKS.has(settings_json)


def infer_devflow_dir(settings_json: str, default: Path) -> Path:
    """Find the DevFlow directory an existing memory hook points at.

    A memory hook command looks like ``<devflow>/scripts/hooks/<script>``,
    so the installation directory is three levels up.

    Args:
        settings_json: Current settings document
        default: Directory to use when no memory hook is registered

    Returns:
        The inferred or default DevFlow directory
    """
    hooks = parse_settings(settings_json).get("hooks") or {}
    for slot in MEMORY_HOOKS.slots:
        for matcher in _event_matchers(hooks, slot.event):
            for hook in _matcher_hooks(matcher):
                if slot.matches(hook):
                    parents = PurePath(hook["command"]).parents
                    if len(parents) >= 3:
                        return Path(parents[2])
    return default
