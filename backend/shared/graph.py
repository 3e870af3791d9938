"""
Task dependency graph.
Dependencies are referenced by id and may point at tasks that do not exist
(dangling). They are kept as-is on the task; only edges between known tasks go
into the networkx graph (dep -> dependent, so topological order runs deps first).
"""

from typing import Dict, Iterable, List, Optional, Set

import networkx as nx
from loguru import logger

from tasks.models import Task


class TaskGraph:
    """Immutable view over a job's tasks. Construction never fails."""

    def __init__(self, tasks: Iterable[Task]):
        self._tasks: Dict[str, Task] = {}
        for task in tasks:
            if task.id in self._tasks:
                logger.warning("Duplicate task id {} ignored (first occurrence kept)", task.id)
                continue
            self._tasks[task.id] = task
        self._order = {tid: idx for idx, tid in enumerate(self._tasks)}

        self.G = nx.DiGraph()
        self.G.add_nodes_from(self._tasks)
        for tid, task in self._tasks.items():
            for dep in task.dependencies:
                if dep in self._tasks:
                    self.G.add_edge(dep, tid)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        return self.exists(task_id)

    def neighbors(self, task_id: str) -> List[str]:
        """Dependencies of task_id, dangling references included."""
        task = self._tasks.get(task_id)
        return list(task.dependencies) if task else []

    def all_ids(self) -> Set[str]:
        return set(self._tasks)

    def exists(self, task_id: str) -> bool:
        return task_id in self._tasks

    def task_ids(self) -> List[str]:
        """Ids in the order tasks were provided."""
        return list(self._tasks)

    def task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def dangling(self, task_id: str) -> List[str]:
        """Dependencies of task_id that name no known task."""
        return [d for d in self.neighbors(task_id) if d not in self._tasks]

    def topological_order(self, exclude: Iterable[str] = ()) -> List[str]:
        """Topological order of the subgraph without `exclude`, ties broken by input order.
        Raises networkx.NetworkXUnfeasible if the remaining subgraph still has a cycle."""
        excluded = set(exclude)
        sub = self.G.subgraph(n for n in self.G.nodes if n not in excluded)
        return list(nx.lexicographical_topological_sort(sub, key=self._order.__getitem__))
