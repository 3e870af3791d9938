"""
Task model shared by extraction, resolution and the API layer.
Tasks are frozen: the resolver emits new copies instead of patching in place.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    READY = "ready"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    ERROR = "error"


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    dependencies: List[str] = Field(default_factory=list)
    status: Optional[TaskStatus] = None
    error_message: Optional[str] = Field(None, alias="errorMessage")

    @field_validator("dependencies", mode="before")
    @classmethod
    def _collapse_duplicates(cls, value):
        """Duplicates collapse to their first occurrence; order is kept for display."""
        if isinstance(value, (str, int)):
            value = [value]
        seen = []
        for dep in value or []:
            dep = str(dep).strip()
            if dep and dep not in seen:
                seen.append(dep)
        return seen

    def to_payload(self) -> dict:
        """camelCase dict for the wire; errorMessage omitted when unset."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
