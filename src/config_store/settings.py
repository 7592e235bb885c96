"""
config_store.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the storage core.
- Size per-tenant pools and bound every wait (pool checkout, statements).
- Offer a cached settings instance for composition roots.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration with defaults safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="CFGSTORE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "config-store"
    log_level: str = "INFO"

    # Persistence. Production points this at postgresql+asyncpg://...
    database_url: str = Field(default="sqlite+aiosqlite:///./config_store.db", repr=False)
    # Tenant namespace is "<tenant>_<suffix>", e.g. "harvard_mod_configuration".
    namespace_suffix: str = "mod_configuration"
    # SQLite only: directory holding one attached database file per namespace.
    sqlite_namespace_dir: str | None = None

    # Per-tenant pool sizing.
    pool_size: int = Field(default=5, ge=1)
    pool_max_overflow: int = Field(default=0, ge=0)
    pool_timeout_s: float = Field(default=30.0, gt=0)

    # None leaves standalone statements unbounded (pool checkout is still bounded).
    statement_timeout_s: float | None = Field(default=30.0, gt=0)
    transaction_statement_timeout_s: float = Field(default=30.0, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars on every store construction.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every other module receives a Settings instance explicitly; only composition
# roots call get_settings().
