"""
Derived schedule values handed back to callers.

A snapshot is immutable once built. The mutation service swaps whole
snapshots; nothing ever edits one in place.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from trestle.domain import TaskStatus


@dataclass(frozen=True)
class ScheduleWarning:
    """Non-blocking finding about a computed schedule."""
    kind: str  # e.g. "invalid_lag"
    task_id: uuid.UUID
    message: str


@dataclass(frozen=True)
class TaskSchedule:
    """Computed values for a single task."""
    task_id: uuid.UUID
    name: str
    parent_id: Optional[uuid.UUID]
    predecessor_ids: tuple[uuid.UUID, ...]
    duration_days: int
    # Forward pass results
    earliest_start: date
    earliest_finish: date
    # Backward pass results
    latest_start: date
    latest_finish: date
    # Float
    total_float: int  # Days of float (0 = critical)
    on_critical_path: bool
    # Roll-up
    progress: float
    status: TaskStatus


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Complete computed schedule for a project."""
    project_id: uuid.UUID
    as_of: date  # Day the status roll-up was evaluated for
    entries: tuple[TaskSchedule, ...]
    project_start: Optional[date]
    project_finish: Optional[date]
    critical_path: tuple[uuid.UUID, ...]
    warnings: tuple[ScheduleWarning, ...] = field(default=())

    def entry(self, task_id: uuid.UUID) -> TaskSchedule:
        for entry in self.entries:
            if entry.task_id == task_id:
                return entry
        raise KeyError(task_id)

    @property
    def critical_task_ids(self) -> list[uuid.UUID]:
        return [e.task_id for e in self.entries if e.on_critical_path]

    @property
    def duration_days(self) -> int:
        if self.project_start is None or self.project_finish is None:
            return 0
        return (self.project_finish - self.project_start).days

    @classmethod
    def empty(cls, project_id: uuid.UUID, as_of: date) -> "ScheduleSnapshot":
        return cls(
            project_id=project_id,
            as_of=as_of,
            entries=(),
            project_start=None,
            project_finish=None,
            critical_path=(),
        )
