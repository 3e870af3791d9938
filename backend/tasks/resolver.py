"""
Status resolver - the single place task status is computed.

Precedence:
1. member of a reported cycle -> error (message names the first cycle containing it)
2. in the completed set       -> completed
3. every dependency completed -> ready (vacuously true with no dependencies)
4. otherwise                  -> blocked (dangling and error deps never count as completed)

Cycle members are resolved first and left out of the topological pass, so the
remainder is resolved in dependency order. Returns a fresh {id: Task} snapshot;
the input tasks are never mutated.
"""

from collections import Counter
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, List

from .cycles import format_cycle
from .models import Task, TaskStatus

if TYPE_CHECKING:
    from shared.graph import TaskGraph

CYCLE_ERROR_PREFIX = "circular dependency: "


def cycle_membership(cycles: Iterable[List[str]]) -> Dict[str, str]:
    """Map each task id to the description of the first reported cycle it sits on."""
    membership: Dict[str, str] = {}
    for cycle in cycles:
        desc = format_cycle(cycle)
        for tid in cycle:
            membership.setdefault(tid, desc)
    return membership


def resolve_statuses(
    graph: "TaskGraph",
    cycles: Iterable[List[str]],
    completed: AbstractSet[str] = frozenset(),
) -> Dict[str, Task]:
    membership = cycle_membership(cycles)
    resolved: Dict[str, TaskStatus] = {tid: TaskStatus.ERROR for tid in membership if graph.exists(tid)}

    for tid in graph.topological_order(exclude=resolved):
        if tid in completed:
            resolved[tid] = TaskStatus.COMPLETED
        elif all(resolved.get(dep) == TaskStatus.COMPLETED for dep in graph.neighbors(tid)):
            resolved[tid] = TaskStatus.READY
        else:
            resolved[tid] = TaskStatus.BLOCKED

    snapshot: Dict[str, Task] = {}
    for tid in graph.task_ids():
        status = resolved[tid]
        message = CYCLE_ERROR_PREFIX + membership[tid] if status == TaskStatus.ERROR else None
        snapshot[tid] = graph.task(tid).model_copy(update={"status": status, "error_message": message})
    return snapshot


def status_counts(tasks: Iterable[Task]) -> Dict[str, int]:
    """{status: count} for logging and job summaries."""
    counts = Counter(t.status.value for t in tasks if t.status is not None)
    return dict(counts)
