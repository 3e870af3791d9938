"""Task builders and instant extractors for tests."""

from typing import Dict, List

from shared.errors import ExtractionFailure
from tasks import Task


def make_tasks(spec: Dict[str, List[str]]) -> List[Task]:
    """{'A': [], 'B': ['A']} -> [Task(A), Task(B, deps=[A])] in dict order."""
    return [Task(id=tid, description=f"task {tid}", dependencies=deps) for tid, deps in spec.items()]


def static_extractor(spec: Dict[str, List[str]]):
    async def extract(transcript: str) -> List[Task]:
        return make_tasks(spec)

    return extract


async def failing_extractor(transcript: str) -> List[Task]:
    raise ExtractionFailure("could not parse transcript")


def statuses(tasks) -> Dict[str, str]:
    """{id: status} from a Task list/dict or a list of wire payloads."""
    items = tasks.values() if isinstance(tasks, dict) else tasks
    out = {}
    for t in items:
        if isinstance(t, dict):
            out[t["id"]] = t["status"]
        else:
            out[t.id] = t.status.value
    return out
