"""Job lifecycle and task completion."""

from .completion import complete_task
from .manager import JobManager, normalize_transcript, transcript_hash
from .models import Job, JobStatus, TaskSnapshot

__all__ = [
    "Job",
    "JobManager",
    "JobStatus",
    "TaskSnapshot",
    "complete_task",
    "normalize_transcript",
    "transcript_hash",
]
