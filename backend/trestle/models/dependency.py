import uuid
from datetime import datetime
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from trestle.domain import DependencyType
from trestle.models.base import timestamp_field


class Dependency(SQLModel, table=True):
    """
    Dependency model representing a typed edge in the task DAG.

    predecessor_id -> successor_id with dependency_type FS means:
    "The successor may start lag_days after the predecessor finishes"

    At most one edge exists per (predecessor, successor, type) triple.
    """

    __tablename__ = "dependencies"
    __table_args__ = (
        UniqueConstraint(
            "predecessor_id", "successor_id", "dependency_type",
            name="uq_dependency_triple",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    predecessor_id: uuid.UUID = Field(foreign_key="tasks.id", index=True)
    successor_id: uuid.UUID = Field(foreign_key="tasks.id", index=True)
    dependency_type: DependencyType = Field(default=DependencyType.FINISH_TO_START)
    lag_days: int = Field(default=0)

    created_at: datetime = timestamp_field()
