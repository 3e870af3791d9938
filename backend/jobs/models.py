"""
Job state.
One Job per submitted transcript. The job's own status moves
pending -> processing -> completed | failed exactly once; after completion only
the task snapshot changes, and it is swapped as a whole, never patched.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional

from tasks import Task, describe_cycles, status_counts

if TYPE_CHECKING:
    from shared.graph import TaskGraph


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


@dataclass(frozen=True)
class TaskSnapshot:
    """Resolved tasks plus the completed-set they were resolved against."""

    tasks: Dict[str, Task]
    completed: FrozenSet[str] = frozenset()

    def task_list(self) -> List[Task]:
        return list(self.tasks.values())


@dataclass(eq=False)
class Job:
    transcript_hash: str
    id: str = field(default_factory=lambda: f"job_{uuid.uuid4().hex[:12]}")
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=now_utc)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    graph: Optional["TaskGraph"] = None
    cycles: List[List[str]] = field(default_factory=list)
    cycle_details: List[str] = field(default_factory=list)
    snapshot: Optional[TaskSnapshot] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycle_details)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _transition(self, new_status: JobStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise RuntimeError(f"Job {self.id}: illegal transition {self.status.value} -> {new_status.value}")
        self.status = new_status

    def start(self) -> None:
        self._transition(JobStatus.PROCESSING)

    def complete(self, graph: "TaskGraph", cycles: List[List[str]], snapshot: TaskSnapshot) -> None:
        """Publish graph, cycles and the first snapshot, then flip to completed."""
        self.graph = graph
        self.cycles = [list(c) for c in cycles]
        self.cycle_details = describe_cycles(self.cycles)
        self.snapshot = snapshot
        self.completed_at = now_utc()
        self._transition(JobStatus.COMPLETED)

    def fail(self, error: str) -> None:
        self.error = error or "Processing failed"
        self._transition(JobStatus.FAILED)

    def replace_snapshot(self, snapshot: TaskSnapshot) -> None:
        if self.status != JobStatus.COMPLETED:
            raise RuntimeError(f"Job {self.id}: snapshot can only change after completion")
        self.snapshot = snapshot

    def data_payload(self) -> Optional[dict]:
        """{tasks, hasCycles, cycleDetails, completedAt}; None unless completed."""
        snapshot = self.snapshot
        if self.status != JobStatus.COMPLETED or snapshot is None:
            return None
        return {
            "tasks": [t.to_payload() for t in snapshot.task_list()],
            "hasCycles": self.has_cycles,
            "cycleDetails": list(self.cycle_details),
            "completedAt": _iso(self.completed_at),
        }

    def status_payload(self) -> dict:
        payload = {"jobId": self.id, "status": self.status.value}
        data = self.data_payload()
        if data is not None:
            payload["data"] = data
        if self.status == JobStatus.FAILED:
            payload["error"] = self.error
        return payload

    def summary(self) -> dict:
        snapshot = self.snapshot
        summary = {
            "jobId": self.id,
            "status": self.status.value,
            "createdAt": _iso(self.created_at),
            "completedAt": _iso(self.completed_at),
            "taskCount": len(snapshot.tasks) if snapshot else 0,
            "hasCycles": self.has_cycles,
        }
        if snapshot:
            summary["statusCounts"] = status_counts(snapshot.task_list())
        if self.error:
            summary["error"] = self.error
        return summary
