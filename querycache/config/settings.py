"""Process-wide settings loaded from environment variables via pydantic-settings.

Settings are read from two sources (in priority order):

  1. Environment variables prefixed ``QUERYCACHE_`` -- e.g.
     ``QUERYCACHE_CACHE_DIR=/var/cache/app``
  2. A ``.env`` file in the working directory

Per-cache options (SQL text, executor, mappers) are NOT settings; they are
passed to each :class:`~querycache.services.query_cache.QueryCache`.  The
values here only supply the process-wide defaults those options fall back to.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """querycache settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUERYCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Snapshot persistence ===
    # Directory the default snapshot path (<kebab-case-name>.json) lives in.
    cache_dir: str = "."
    should_save_to_file: bool = False

    # === Refresh scheduling ===
    # Each cache draws its interval uniformly from this range so that many
    # caches started together do not all hit the database on the same tick.
    reload_interval_min_seconds: float = 300.0
    reload_interval_max_seconds: float = 360.0

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_interval_bounds(self) -> "Settings":
        if self.reload_interval_min_seconds <= 0:
            raise ValueError("reload_interval_min_seconds must be positive")
        if self.reload_interval_max_seconds < self.reload_interval_min_seconds:
            raise ValueError(
                "reload_interval_max_seconds must be >= reload_interval_min_seconds"
            )
        return self
