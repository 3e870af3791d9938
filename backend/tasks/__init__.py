"""Task model, cycle detection and status resolution."""

from .cycles import describe_cycles, detect_cycles, format_cycle
from .models import Priority, Task, TaskStatus
from .resolver import resolve_statuses, status_counts

__all__ = [
    "Priority",
    "Task",
    "TaskStatus",
    "describe_cycles",
    "detect_cycles",
    "format_cycle",
    "resolve_statuses",
    "status_counts",
]
