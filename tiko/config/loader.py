"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION LAYERS ─────────────────────────────────────────────
#
#   1. config/config.yaml  - scoring weights and thresholds (checked in)
#   2. .env / environment  - secrets and per-deploy values (Settings)
#
# load_config() reads the YAML, then deep-merges the Settings-derived
# values on top, so a key present in both resolves to the env value:
#
#   base      = {"events": {"cache_ttl": 3600, "limit": 10}}
#   overrides = {"events": {"cache_ttl": 600}}
#   result    = {"events": {"cache_ttl": 600, "limit": 10}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from tiko.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            only the env-derived sections.
        settings: Pre-built settings; a fresh ``Settings()`` when omitted.

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
        "events": {
            "default_city": settings.default_city,
            "cache_ttl": settings.event_cache_ttl,
            "stale_ttl": settings.event_cache_stale_ttl,
            "available_sources": settings.get_available_event_sources(),
        },
        "storage": {
            "enabled": bool(settings.mongodb_uri),
            "database": settings.mongodb_db_name,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
