"""
Plain records the scheduling engine works on.

The engine never touches ORM rows directly: stores map their rows to these
frozen dataclasses on load and back on commit, so an in-memory graph can be
mutated and thrown away without leaking into persistence.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    BLOCKED = "Blocked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class DependencyType(str, Enum):
    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"


MIN_DURATION_DAYS = 1


@dataclass(frozen=True)
class TaskRecord:
    """Stored attributes of one task."""

    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    start_date: date
    due_date: date
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: float = 0.0
    parent_id: Optional[uuid.UUID] = None
    actual_completion_date: Optional[date] = None
    description: str = ""
    notes: str = ""

    @property
    def duration_days(self) -> int:
        """Whole days between start and due date, never below one."""
        return max((self.due_date - self.start_date).days, MIN_DURATION_DAYS)

    def evolve(self, **changes) -> "TaskRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class DependencyEdge:
    """A typed, lagged constraint from predecessor to successor."""

    predecessor_id: uuid.UUID
    successor_id: uuid.UUID
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lag_days: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def triple(self) -> tuple[uuid.UUID, uuid.UUID, DependencyType]:
        return (self.predecessor_id, self.successor_id, self.dependency_type)


@dataclass
class ChangeSet:
    """Everything one accepted mutation writes back to the store."""

    upsert_tasks: list[TaskRecord] = field(default_factory=list)
    delete_task_ids: list[uuid.UUID] = field(default_factory=list)
    add_edges: list[DependencyEdge] = field(default_factory=list)
    delete_edge_ids: list[uuid.UUID] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.upsert_tasks or self.delete_task_ids
            or self.add_edges or self.delete_edge_ids
        )
