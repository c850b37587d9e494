import uuid
from datetime import date
from pydantic import BaseModel, Field, computed_field

from trestle.domain import MIN_DURATION_DAYS, TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Schema for proposing a new task."""
    name: str
    description: str = ""
    notes: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: date
    due_date: date
    actual_completion_date: date | None = None
    progress: float = Field(default=0, ge=0, le=100)
    parent_id: uuid.UUID | None = None


class TaskUpdate(BaseModel):
    """Schema for updating a task; the parent link has its own endpoint."""
    name: str | None = None
    description: str | None = None
    notes: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    start_date: date | None = None
    due_date: date | None = None
    actual_completion_date: date | None = None
    progress: float | None = Field(default=None, ge=0, le=100)


class ParentUpdate(BaseModel):
    """Schema for moving a task under a new parent (or to the top level)."""
    parent_id: uuid.UUID | None = None


class TaskRead(BaseModel):
    """Schema for reading a task with its computed duration."""
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    description: str
    notes: str
    status: TaskStatus
    priority: TaskPriority
    start_date: date
    due_date: date
    actual_completion_date: date | None
    progress: float
    parent_id: uuid.UUID | None

    @computed_field
    @property
    def duration_days(self) -> int:
        """
        Whole days from start to due date, never below one.

        Example: start Jan 1, due Jan 3 -> 2 days.
        """
        return max((self.due_date - self.start_date).days, MIN_DURATION_DAYS)

    model_config = {"from_attributes": True}
