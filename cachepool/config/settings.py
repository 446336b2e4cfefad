"""
Configuration management for the cache pool library.
"""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cachepool.key_validator import KEY_CHARACTER

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("memory", "filesystem", "sql", "redis", "memcache")


class Settings(BaseSettings):
    """Library settings loaded from environment variables (prefix ``CACHEPOOL_``)."""

    model_config = SettingsConfigDict(env_prefix="CACHEPOOL_", extra="ignore")

    # Backend selection
    cache_backend: str = Field(
        default="memory",
        description="Adapter used by create_adapter(): memory, filesystem, sql, redis, memcache"
    )
    default_pool_name: str = Field(
        default="default", description="Pool name used when none is given"
    )
    key_separator: str = Field(
        default=":",
        description="Separator between pool name and key for networked backends; must not use key characters"
    )

    # Memory backend
    memory_max_items: Optional[int] = Field(
        default=None,
        description="Opt-in LRU bound for the in-memory adapter; unbounded when unset"
    )

    # Filesystem backend
    cache_dir: str = Field(
        default="data/cache",
        description="Base directory for disk-based pools (one subdirectory per pool)"
    )

    # SQL backend
    sql_db_path: str = Field(
        default="data/cache.db", description="SQLite database file for the SQL adapter"
    )
    sql_table_name: str = Field(
        default="cache_items", description="Table holding cache rows for every pool"
    )
    sql_expiration_format: str = Field(
        default="%Y-%m-%d %H:%M:%S", description="strftime format of the expiration column"
    )

    # Redis backend
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )

    # Memcache backend
    memcache_host: str = Field(default="localhost", description="Memcached host")
    memcache_port: int = Field(default=11211, description="Memcached port")
    memcache_timeout: Optional[float] = Field(
        default=None, description="Socket timeout (seconds) for the memcached client"
    )

    @field_validator("cache_backend")
    @classmethod
    def _validate_backend(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if normalized not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported cache backend '{value}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
            )
        return normalized

    @field_validator("memory_max_items")
    @classmethod
    def _validate_max_items(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("memory_max_items must be positive")
        return value

    @field_validator("key_separator")
    @classmethod
    def _validate_separator(cls, value: str) -> str:
        if not value or KEY_CHARACTER.search(value):
            raise ValueError("key_separator must be non-empty and may not contain A-Z a-z 0-9 _ or .")
        return value


settings = Settings()
logger.debug(f"Resolved cache backend: {settings.cache_backend}")
