"""Configuration module -- exports Settings, load_config and apply_config."""

from stackdigger.config.loader import apply_config, load_config
from stackdigger.config.settings import Settings

__all__ = ["Settings", "apply_config", "load_config"]
