"""
Shared FastAPI dependencies for the routers.
"""

import uuid
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trestle.database import async_session_maker, get_session
from trestle.exceptions import NotFoundError
from trestle.models import Project
from trestle.schemas import MutationRead, ScheduleRead
from trestle.services.scheduler import MutationResult, ScheduleMutationService
from trestle.store import SqlTaskStore


@lru_cache
def get_schedule_service() -> ScheduleMutationService:
    """One service per process, so per-project locks and snapshots are shared."""
    return ScheduleMutationService(SqlTaskStore(async_session_maker))


async def get_project(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> Project:
    project = await session.get(Project, project_id)
    if not project:
        raise NotFoundError("Project", str(project_id))
    return project


def mutation_response(result: MutationResult) -> MutationRead:
    return MutationRead(
        id=result.entity_id,
        schedule=ScheduleRead.model_validate(result.snapshot),
    )
