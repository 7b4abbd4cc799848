"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_pipeline_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .logs import LoggingSettings
from .pipeline import PipelineSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """Get cached pipeline settings."""
    return PipelineSettings()


def clear_all_caches() -> None:
    """Clear every settings cache so the next call re-reads the environment."""
    get_db_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_pipeline_settings.cache_clear()
