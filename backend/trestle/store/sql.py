"""
SQLModel-backed task store.

Rows are mapped to engine records on the way out and back on commit. Each
commit runs in a single transaction, so a change set is applied whole or
rolled back.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from trestle.domain import ChangeSet, DependencyEdge, TaskRecord
from trestle.logging_config import get_logger
from trestle.models import Dependency, Project, Task
from trestle.models.base import utcnow

logger = get_logger(__name__)

_TASK_FIELDS = (
    "project_id",
    "name",
    "description",
    "notes",
    "status",
    "priority",
    "start_date",
    "due_date",
    "actual_completion_date",
    "progress",
    "parent_id",
)


def task_to_record(row: Task) -> TaskRecord:
    return TaskRecord(id=row.id, **{name: getattr(row, name) for name in _TASK_FIELDS})


def record_to_task(record: TaskRecord) -> Task:
    return Task(id=record.id, **{name: getattr(record, name) for name in _TASK_FIELDS})


def dependency_to_edge(row: Dependency) -> DependencyEdge:
    return DependencyEdge(
        id=row.id,
        predecessor_id=row.predecessor_id,
        successor_id=row.successor_id,
        dependency_type=row.dependency_type,
        lag_days=row.lag_days,
    )


class SqlTaskStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def list_tasks(self, project_id: uuid.UUID) -> list[TaskRecord]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Task).where(Task.project_id == project_id)
            )
            return [task_to_record(row) for row in result.scalars().all()]

    async def list_edges(self, project_id: uuid.UUID) -> list[DependencyEdge]:
        async with self._session_maker() as session:
            ids_result = await session.execute(
                select(Task.id).where(Task.project_id == project_id)
            )
            task_ids = [row[0] for row in ids_result.all()]
            if not task_ids:
                return []
            result = await session.execute(
                select(Dependency).where(Dependency.predecessor_id.in_(task_ids))
            )
            return [dependency_to_edge(row) for row in result.scalars().all()]

    async def get_task(self, task_id: uuid.UUID) -> Optional[TaskRecord]:
        async with self._session_maker() as session:
            row = await session.get(Task, task_id)
            return task_to_record(row) if row else None

    async def get_project_deadline(self, project_id: uuid.UUID) -> Optional[date]:
        async with self._session_maker() as session:
            project = await session.get(Project, project_id)
            return project.deadline if project else None

    async def commit(self, project_id: uuid.UUID, changes: ChangeSet) -> None:
        async with self._session_maker() as session:
            async with session.begin():
                if changes.delete_edge_ids:
                    await session.execute(
                        delete(Dependency).where(Dependency.id.in_(changes.delete_edge_ids))
                    )

                for record in changes.upsert_tasks:
                    row = await session.get(Task, record.id)
                    if row is None:
                        session.add(record_to_task(record))
                        continue
                    for name in _TASK_FIELDS:
                        setattr(row, name, getattr(record, name))
                    row.updated_at = utcnow()
                await session.flush()

                for task_id in changes.delete_task_ids:
                    row = await session.get(Task, task_id)
                    if row is not None:
                        await session.delete(row)
                await session.flush()

                for edge in changes.add_edges:
                    session.add(Dependency(
                        id=edge.id,
                        predecessor_id=edge.predecessor_id,
                        successor_id=edge.successor_id,
                        dependency_type=edge.dependency_type,
                        lag_days=edge.lag_days,
                    ))

        logger.debug(
            f"Committed project={project_id}: "
            f"{len(changes.upsert_tasks)} task upserts, {len(changes.delete_task_ids)} task deletes, "
            f"{len(changes.add_edges)} edge adds, {len(changes.delete_edge_ids)} edge deletes"
        )
