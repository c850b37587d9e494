import uuid
from pydantic import BaseModel

from trestle.domain import DependencyType


class DependencyCreate(BaseModel):
    """Schema for proposing a new dependency."""
    predecessor_id: uuid.UUID  # The constraining task
    successor_id: uuid.UUID    # The constrained task
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lag_days: int = 0  # Negative = lead time


class DependencyRead(BaseModel):
    """Schema for reading a dependency."""
    id: uuid.UUID
    predecessor_id: uuid.UUID
    successor_id: uuid.UUID
    dependency_type: DependencyType
    lag_days: int

    model_config = {"from_attributes": True}
