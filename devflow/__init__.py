"""DevFlow - plugin installer and configuration manager for Claude Code."""

__version__ = "1.0.0"
