"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from taskflow_service.core.settings import get_pipeline_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file (development only)
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_pipeline_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .pipeline import PipelineSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings

__all__ = [
    "LoggingSettings",
    "PipelineSettings",
    "PostgresSettings",
    "RabbitSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_pipeline_settings",
    "get_rabbit_settings",
]
