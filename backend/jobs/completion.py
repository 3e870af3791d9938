"""
Task completion handler.
Only ready tasks may be completed. The graph never changes after job completion,
so a completion just grows the completed-set and re-resolves the whole job,
which may flip dependents blocked -> ready in the same pass.
"""

from typing import List

from shared.errors import InvalidState, NotFound
from tasks import Task, TaskStatus, resolve_statuses

from .models import Job, TaskSnapshot


async def complete_task(job: Job, task_id: str) -> List[Task]:
    """Mark task_id completed and return the refreshed task list.
    Serialized per job by job.lock; readers keep seeing the old snapshot until the swap."""
    async with job.lock:
        snapshot = job.snapshot
        if snapshot is None or job.graph is None:
            raise NotFound(f"Job {job.id} has no tasks (status: {job.status.value})")
        task = snapshot.tasks.get(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found in job {job.id}")
        if task.status != TaskStatus.READY:
            raise InvalidState(f"Task {task_id} is {task.status.value}; only ready tasks can be completed")

        completed = snapshot.completed | {task_id}
        tasks = resolve_statuses(job.graph, job.cycles, completed)
        job.replace_snapshot(TaskSnapshot(tasks=tasks, completed=completed))
    return list(tasks.values())
