"""Configuration models and file parsing."""
