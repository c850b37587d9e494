"""
Project (site) routes for the Trestle API.
"""

import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from trestle.database import get_session
from trestle.models import Dependency, Project, Task
from trestle.models.base import utcnow
from trestle.routes.deps import get_project, get_schedule_service
from trestle.schemas import ProjectCreate, ProjectUpdate, ProjectRead
from trestle.services.scheduler import ScheduleMutationService
from trestle.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    session: AsyncSession = Depends(get_session),
) -> Project:
    """Create a new project."""
    project = Project(**project_in.model_dump())
    session.add(project)
    await session.flush()
    await session.refresh(project)

    logger.info(f"Created project: id={project.id} name='{project.name}'")

    return project


@router.get("/", response_model=list[ProjectRead])
async def list_projects(
    session: AsyncSession = Depends(get_session),
) -> list[Project]:
    """List all projects."""
    result = await session.execute(select(Project).order_by(Project.created_at))
    projects = list(result.scalars().all())

    logger.debug(f"Listed {len(projects)} projects")

    return projects


@router.get("/{project_id}", response_model=ProjectRead)
async def read_project(project: Project = Depends(get_project)) -> Project:
    """Get a project by ID."""
    return project


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_in: ProjectUpdate,
    project: Project = Depends(get_project),
    session: AsyncSession = Depends(get_session),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> Project:
    """
    Update a project.

    A new deadline moves the latest finish of sink tasks, so the cached
    schedule is dropped and recomputed on the next read.
    """
    update_data = project_in.model_dump(exclude_unset=True)

    logger.info(f"Updating project {project.id}: {update_data}")

    for field, value in update_data.items():
        setattr(project, field, value)

    project.updated_at = utcnow()
    await session.flush()
    await session.refresh(project)

    if "deadline" in update_data:
        service.invalidate(project.id)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project: Project = Depends(get_project),
    session: AsyncSession = Depends(get_session),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> None:
    """Delete a project with all its tasks and dependencies."""
    project_id: uuid.UUID = project.id
    logger.info(f"Deleting project {project_id}: '{project.name}'")

    task_ids = select(Task.id).where(Task.project_id == project_id)
    await session.execute(
        delete(Dependency).where(
            or_(Dependency.predecessor_id.in_(task_ids), Dependency.successor_id.in_(task_ids))
        )
    )
    await session.execute(
        update(Task).where(Task.project_id == project_id).values(parent_id=None)
    )
    await session.execute(delete(Task).where(Task.project_id == project_id))
    session.expunge(project)
    await session.execute(delete(Project).where(Project.id == project_id))

    service.forget(project_id)
