"""Pydantic-settings configuration for the computation dependency updater.

Loads store connection parameters and daemon timing from a .env file (or
``COMPDEPENDS_*`` environment variables) with sensible defaults for local
development.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COMPDEPENDS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Project
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # Time-series store
    database_url: str = "sqlite:///compdepends.db"
    db_pool_pre_ping: bool = True

    # Application identity
    app_name: str = "compdepends"
    office_id: str = ""

    # Back-end flavour: True when the TSID key *is* the site-datatype id
    # (CWMS-style stores), False when parms must be resolved by unique name.
    tsid_key_is_sdi: bool = True

    # Lock / heartbeat
    lock_stale_seconds: int = 60

    # Poll loop timing
    cache_refresh_seconds: int = 900  # full re-evaluation every 15 minutes
    idle_sleep_seconds: float = 1.0
    reconnect_backoff_seconds: float = 10.0
    regression_idle_seconds: float = 10.0

    # Diagnostics
    group_dump_dir: Optional[str] = None


# Singleton instance
settings = Settings()
