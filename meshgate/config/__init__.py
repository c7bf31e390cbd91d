"""Configuration: packaged YAML defaults, user YAML, environment overrides."""

from meshgate.config.settings import Settings, load_settings, read_config

__all__ = ["Settings", "load_settings", "read_config"]
