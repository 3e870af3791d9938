"""
Cycle detection over the dependency relation.
Iterative DFS with a tri-state per node. Every back edge closes one cycle, read
from the active path starting at the repeated node. Finished nodes are never
re-explored, so each cycle is reported once, from whichever node the outer loop
(input order) reaches first. O(V+E).
"""

from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from shared.graph import TaskGraph

UNVISITED = 0
IN_PROGRESS = 1
DONE = 2

CYCLE_ARROW = " → "


def format_cycle(cycle: List[str]) -> str:
    """Render a cycle as a closed loop, e.g. ['A', 'B'] -> 'A → B → A'."""
    if not cycle:
        return ""
    return CYCLE_ARROW.join(list(cycle) + [cycle[0]])


def detect_cycles(graph: "TaskGraph") -> List[List[str]]:
    """Return every cycle found, each as the ids traversed before returning to its start.
    A self-dependency is a cycle of length 1. Dangling references are skipped."""
    state: Dict[str, int] = {tid: UNVISITED for tid in graph.task_ids()}
    cycles: List[List[str]] = []

    for start in graph.task_ids():
        if state[start] != UNVISITED:
            continue
        path = [start]
        position = {start: 0}
        pending = [iter(graph.neighbors(start))]
        state[start] = IN_PROGRESS

        while path:
            nxt = next(pending[-1], None)
            if nxt is None:
                node = path.pop()
                pending.pop()
                del position[node]
                state[node] = DONE
                continue
            if not graph.exists(nxt):
                continue
            if state[nxt] == IN_PROGRESS:
                cycles.append(path[position[nxt]:])
            elif state[nxt] == UNVISITED:
                state[nxt] = IN_PROGRESS
                position[nxt] = len(path)
                path.append(nxt)
                pending.append(iter(graph.neighbors(nxt)))

    return cycles


def describe_cycles(cycles: List[List[str]]) -> List[str]:
    return [format_cycle(c) for c in cycles]
