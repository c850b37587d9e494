"""
The narrow persistence boundary of the scheduling engine.

The engine reads a project's tasks and edges through this interface at load
time and writes one ``ChangeSet`` per accepted mutation. These calls are the
only points where a mutation can suspend.
"""

import uuid
from datetime import date
from typing import Optional, Protocol

from trestle.domain import ChangeSet, DependencyEdge, TaskRecord


class TaskStore(Protocol):
    async def list_tasks(self, project_id: uuid.UUID) -> list[TaskRecord]:
        ...

    async def list_edges(self, project_id: uuid.UUID) -> list[DependencyEdge]:
        ...

    async def get_task(self, task_id: uuid.UUID) -> Optional[TaskRecord]:
        """Look a task up across all projects (used to detect cross-project links)."""
        ...

    async def get_project_deadline(self, project_id: uuid.UUID) -> Optional[date]:
        ...

    async def commit(self, project_id: uuid.UUID, changes: ChangeSet) -> None:
        """Apply the whole change set or nothing."""
        ...
