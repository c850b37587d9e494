"""
Schedule routes: read-only views of a project's computed schedule.
"""

from fastapi import APIRouter, Depends

from trestle.models import Project
from trestle.routes.deps import get_project, get_schedule_service
from trestle.schemas import GanttTask, ScheduleRead
from trestle.services.scheduler import ScheduleMutationService

router = APIRouter()


@router.get("/{project_id}/schedule", response_model=ScheduleRead)
async def get_schedule(
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> ScheduleRead:
    """Earliest/latest dates, float, critical path and rolled-up progress."""
    snapshot = await service.get_schedule(project.id)
    return ScheduleRead.model_validate(snapshot)


@router.get("/{project_id}/gantt", response_model=list[GanttTask])
async def get_gantt(
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> list[dict]:
    """Schedule as Gantt bars: id, name, start, end, progress, dependencies."""
    return await service.get_gantt(project.id)
