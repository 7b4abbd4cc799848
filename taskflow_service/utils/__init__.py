"""Utility modules shared across features and workers.

- Partial updates with change tracking

Retry helpers live in ``taskflow_service.utils.retry``.
"""

from taskflow_service.utils.updates import UpdateResult, apply_updates

__all__ = [
    "UpdateResult",
    "apply_updates",
]
