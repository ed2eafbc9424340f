"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/querycache.yaml`` -- static defaults checked into the host repo
  2. ``.env`` file             -- local developer overrides
  3. Environment variables     -- set at deploy time

The YAML file may carry a ``caches:`` section keyed by cache name; each entry
holds option overrides (``reload_interval_seconds``, ``should_save_to_file``,
``cache_file_path``, ``key_field_name``) for that one cache:

    caches:
      CountryCache:
        reload_interval_seconds: 60
        should_save_to_file: true
"""

from pathlib import Path
from typing import Any

import yaml

from querycache.config.settings import Settings
from querycache.utils.errors import ConfigurationError

# Options that may be set from a config file.  Callables and executors
# cannot be expressed in YAML and are always passed in code.
_OVERRIDABLE_OPTIONS = frozenset(
    {
        "cache_file_path",
        "key_field_name",
        "reload_interval_seconds",
        "should_save_to_file",
    }
)


def load_config(
    path: str = "config/querycache.yaml",
    settings: Settings | None = None,
) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
              an empty base config.
        settings: Pre-built settings; defaults to ``Settings()``.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    settings = settings or Settings()
    env_overrides = {
        "defaults": {
            "cache_dir": settings.cache_dir,
            "should_save_to_file": settings.should_save_to_file,
            "reload_interval_min_seconds": settings.reload_interval_min_seconds,
            "reload_interval_max_seconds": settings.reload_interval_max_seconds,
        },
        "app": {
            "env": settings.app_env,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def cache_overrides(config: dict, name: str) -> dict[str, Any]:
    """Return the option overrides configured for the cache called *name*.

    Raises:
        ConfigurationError: If the entry names an option that cannot be
            set from configuration.
    """
    entry = (config.get("caches") or {}).get(name) or {}
    unknown = set(entry) - _OVERRIDABLE_OPTIONS
    if unknown:
        raise ConfigurationError(
            f"Unsupported options in config: {', '.join(sorted(unknown))}",
            cache_name=name,
        )
    return dict(entry)


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
