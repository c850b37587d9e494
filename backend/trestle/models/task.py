import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship

from trestle.domain import TaskPriority, TaskStatus
from trestle.models.base import timestamp_field

if TYPE_CHECKING:
    from trestle.models.project import Project


class Task(SQLModel, table=True):
    """
    Task model as stored; derived schedule values are never persisted.

    Key fields:
    - start_date / due_date: planned window, duration is their difference
    - progress: manual percentage, authoritative only for leaf tasks
    - parent_id: optional containing task within the same project
    """

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    description: str = Field(default="")
    notes: str = Field(default="")
    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    start_date: date
    due_date: date
    actual_completion_date: date | None = Field(default=None)
    progress: float = Field(default=0.0, ge=0, le=100)

    # Foreign keys
    project_id: uuid.UUID = Field(foreign_key="projects.id", index=True)
    parent_id: uuid.UUID | None = Field(default=None, foreign_key="tasks.id", index=True)

    # Timestamps
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    # Relationships
    project: "Project" = Relationship(back_populates="tasks")
