import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING
from sqlmodel import SQLModel, Field, Relationship

from trestle.models.base import timestamp_field

if TYPE_CHECKING:
    from trestle.models.task import Task


class Project(SQLModel, table=True):
    """Project model - a construction site that groups tasks together."""

    __tablename__ = "projects"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    description: str | None = Field(default=None)
    # Floor for the latest finish of sink tasks in the backward pass
    deadline: date | None = Field(default=None)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()

    # Relationships
    tasks: list["Task"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
