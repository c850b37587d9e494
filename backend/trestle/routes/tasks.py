"""
Task routes for the Trestle API.

Every mutation goes through the schedule mutation service and answers with
the id of the affected task plus the recomputed project schedule.
"""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from trestle.domain import TaskRecord, TaskStatus
from trestle.exceptions import UnknownTaskError
from trestle.models import Project
from trestle.routes.deps import get_project, get_schedule_service, mutation_response
from trestle.schemas import MutationRead, ParentUpdate, TaskCreate, TaskRead, TaskUpdate
from trestle.services.scheduler import ScheduleMutationService
from trestle.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/{project_id}/tasks",
    response_model=MutationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    task_in: TaskCreate,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """Propose a new task for the project."""
    result = await service.propose_task(project.id, **task_in.model_dump())
    return mutation_response(result)


@router.get("/{project_id}/tasks", response_model=list[TaskRead])
async def list_tasks(
    response: Response,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    sort: Literal["start_date", "due_date", "name", "status", "priority", "progress"] = Query("start_date"),
    order: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> list[TaskRecord]:
    """
    List the project's tasks.

    Filter by status or by a search term over name, description and notes;
    ordered by start date unless ``sort`` says otherwise. The total number
    of matches is returned in the X-Total-Count header.
    """
    result = await service.list_tasks(
        project.id,
        status=status_filter,
        search=search,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )
    response.headers["X-Total-Count"] = str(result.total)
    logger.debug(f"Listed {len(result.items)} of {result.total} tasks for project={project.id}")
    return result.items


@router.get("/{project_id}/tasks/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> TaskRecord:
    """Get a task by ID."""
    task = await service.store.get_task(task_id)
    if task is None or task.project_id != project.id:
        raise UnknownTaskError(str(task_id), str(project.id))
    return task


@router.patch("/{project_id}/tasks/{task_id}", response_model=MutationRead)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """Update a task's stored attributes and recompute the schedule."""
    changes = task_in.model_dump(exclude_unset=True)
    result = await service.update_task(project.id, task_id, **changes)
    return mutation_response(result)


@router.delete("/{project_id}/tasks/{task_id}", response_model=MutationRead)
async def delete_task(
    task_id: uuid.UUID,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """Delete a task; its dependencies go with it and its subtasks move up."""
    result = await service.delete_task(project.id, task_id)
    return mutation_response(result)


@router.put("/{project_id}/tasks/{task_id}/parent", response_model=MutationRead)
async def set_parent(
    task_id: uuid.UUID,
    parent_in: ParentUpdate,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """Move a task under another task, or to the top level with a null parent."""
    result = await service.set_parent(project.id, task_id, parent_in.parent_id)
    return mutation_response(result)
