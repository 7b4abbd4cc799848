from __future__ import annotations

from taskflow_service.utils.retry.decorator import retry
from taskflow_service.utils.retry.exceptions import RetryError, RetryStatistics
from taskflow_service.utils.retry.strategies import RetryStrategy

__all__ = ["RetryError", "RetryStatistics", "RetryStrategy", "retry"]
