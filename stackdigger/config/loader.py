"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

``load_config()`` reads the YAML file first, then deep-merges the
environment-based values on top.  ``apply_config()`` pushes the YAML-only
tunables back into a :class:`Settings` instance so services receive a single
typed object.
"""

from pathlib import Path
from typing import Any

import yaml

from stackdigger.config.settings import Settings

# YAML section/key -> Settings field.  Only keys listed here are honoured;
# anything else in the YAML file is informational.
_YAML_FIELD_MAP: dict[tuple[str, str], str] = {
    ("stacks", "max_containers_per_seed"): "max_containers_per_seed",
    ("stacks", "build_timeout"): "stack_build_timeout",
    ("exposure", "history_limit"): "stack_history_limit",
    ("sources", "timeout"): "source_timeout",
    ("sources", "concurrency"): "source_concurrency",
    ("sources", "cache_ttl"): "source_cache_ttl",
    ("sources", "tracklists_request_delay"): "tracklists_request_delay",
    ("enrichment", "min_confidence"): "enrichment_min_confidence",
    ("enrichment", "concurrency"): "enrichment_concurrency",
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to read overrides from.  A fresh
                  ``Settings()`` is created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "enrichment": {
            "spotify_configured": settings.spotify_configured(),
        },
        "exposure": {
            "db_path": settings.exposure_db_path,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def apply_config(settings: Settings, config: dict[str, Any]) -> Settings:
    """Return a copy of *settings* with YAML tunables applied.

    Values explicitly set through the environment (``model_fields_set``)
    win over the YAML file.
    """
    updates: dict[str, Any] = {}
    for (section, key), field_name in _YAML_FIELD_MAP.items():
        value = config.get(section, {}).get(key)
        if value is None or field_name in settings.model_fields_set:
            continue
        updates[field_name] = value
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
