import uuid
from datetime import date
from pydantic import BaseModel

from trestle.domain import TaskStatus


class ScheduleWarningRead(BaseModel):
    """A non-blocking finding, e.g. a lead time before project inception."""
    kind: str
    task_id: uuid.UUID
    message: str

    model_config = {"from_attributes": True}


class TaskScheduleRead(BaseModel):
    """Computed schedule values for one task."""
    task_id: uuid.UUID
    name: str
    parent_id: uuid.UUID | None
    predecessor_ids: list[uuid.UUID]
    duration_days: int
    earliest_start: date
    earliest_finish: date
    latest_start: date
    latest_finish: date
    total_float: int
    on_critical_path: bool
    progress: float
    status: TaskStatus

    model_config = {"from_attributes": True}


class ScheduleRead(BaseModel):
    """Schema for reading a project schedule snapshot."""
    project_id: uuid.UUID
    as_of: date
    project_start: date | None
    project_finish: date | None
    duration_days: int
    critical_path: list[uuid.UUID]
    entries: list[TaskScheduleRead]
    warnings: list[ScheduleWarningRead]

    model_config = {"from_attributes": True}


class MutationRead(BaseModel):
    """Id of the created/changed entity plus the fresh schedule."""
    id: uuid.UUID | None
    schedule: ScheduleRead


class GanttTask(BaseModel):
    """One bar for the Gantt widget."""
    id: str
    name: str
    start: date
    end: date
    progress: int
    dependencies: str = ""
    custom_class: str | None = None

    @property
    def dependency_ids(self) -> list[str]:
        return [d for d in self.dependencies.split(",") if d]
