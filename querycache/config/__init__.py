"""Configuration: environment-backed settings and the YAML loader."""

from querycache.config.loader import cache_overrides, load_config
from querycache.config.settings import Settings

__all__ = ["Settings", "cache_overrides", "load_config"]
