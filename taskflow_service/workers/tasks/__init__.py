"""Task-status pipeline workers.

- overdue.py: OverdueScanner, the scheduled producer
- processor.py: TaskProcessor, the job consumer
- tasks.py: taskiq task wiring (imported by the broker, not here)
"""

from taskflow_service.workers.tasks.overdue import OverdueScanner
from taskflow_service.workers.tasks.processor import TaskProcessor

__all__ = ["OverdueScanner", "TaskProcessor"]
