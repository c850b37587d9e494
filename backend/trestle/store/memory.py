"""
Dictionary-backed task store.

Used by tests and by callers embedding the engine without a database.
``latency`` inserts an ``await asyncio.sleep`` into every call so concurrent
requests interleave the way they would against a real database.
"""

import asyncio
import uuid
from datetime import date
from typing import Optional

from trestle.domain import ChangeSet, DependencyEdge, TaskRecord


class InMemoryTaskStore:
    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.tasks: dict[uuid.UUID, TaskRecord] = {}
        self.edges: dict[uuid.UUID, DependencyEdge] = {}
        self.deadlines: dict[uuid.UUID, date] = {}
        self.commit_count = 0

    async def _pause(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    async def list_tasks(self, project_id: uuid.UUID) -> list[TaskRecord]:
        await self._pause()
        return [t for t in self.tasks.values() if t.project_id == project_id]

    async def list_edges(self, project_id: uuid.UUID) -> list[DependencyEdge]:
        await self._pause()
        task_ids = {t.id for t in self.tasks.values() if t.project_id == project_id}
        return [e for e in self.edges.values() if e.predecessor_id in task_ids]

    async def get_task(self, task_id: uuid.UUID) -> Optional[TaskRecord]:
        await self._pause()
        return self.tasks.get(task_id)

    async def get_project_deadline(self, project_id: uuid.UUID) -> Optional[date]:
        return self.deadlines.get(project_id)

    async def commit(self, project_id: uuid.UUID, changes: ChangeSet) -> None:
        await self._pause()
        # No await below this point: the change set lands in one step.
        for edge_id in changes.delete_edge_ids:
            self.edges.pop(edge_id, None)
        for task in changes.upsert_tasks:
            self.tasks[task.id] = task
        for task_id in changes.delete_task_ids:
            self.tasks.pop(task_id, None)
        for edge in changes.add_edges:
            self.edges[edge.id] = edge
        self.commit_count += 1
