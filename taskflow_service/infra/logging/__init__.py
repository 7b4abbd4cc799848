"""Logging infrastructure.

Basic usage:
    import logging

    from taskflow_service.infra.logging import get_lazy_logger, setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Job enqueued", extra={"job_name": "task-status-update"})

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Page ids: {[t.id for t in page]}")
"""

from taskflow_service.infra.logging.config import configure_logging, setup_logging, shutdown
from taskflow_service.infra.logging.formatters import JSONFormatter
from taskflow_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
    "shutdown",
]
