"""Background worker task definitions.

- tasks/: task-status pipeline (overdue scanner, job processor, taskiq task)

For queue infrastructure (broker, scheduler, middleware), see `infra/tasks/`.

Task definitions are registered with the broker on import.
"""

from __future__ import annotations

__all__: list[str] = []
