"""
Dependency routes for the Trestle API.
"""

import uuid
from fastapi import APIRouter, Depends, status

from trestle.domain import DependencyEdge
from trestle.exceptions import ErrorResponse
from trestle.models import Project
from trestle.routes.deps import get_project, get_schedule_service, mutation_response
from trestle.schemas import DependencyCreate, DependencyRead, MutationRead
from trestle.services.scheduler import ScheduleMutationService
from trestle.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/{project_id}/dependencies",
    response_model=MutationRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Self dependency, cross-project link or cycle"},
        404: {"model": ErrorResponse, "description": "Unknown task"},
        409: {"model": ErrorResponse, "description": "Duplicate dependency"},
    },
)
async def create_dependency(
    dep_in: DependencyCreate,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """
    Propose a new dependency (edge in the task DAG).

    Rejected with 400 on a self dependency, a cross-project link or a cycle,
    404 for an unknown task and 409 for a duplicate; nothing is stored then.
    """
    logger.info(
        f"Proposing dependency: {dep_in.predecessor_id} -> {dep_in.successor_id} "
        f"({dep_in.dependency_type.value}, lag={dep_in.lag_days})"
    )
    result = await service.propose_edge(
        project.id,
        dep_in.predecessor_id,
        dep_in.successor_id,
        dep_in.dependency_type,
        dep_in.lag_days,
    )
    return mutation_response(result)


@router.get("/{project_id}/dependencies", response_model=list[DependencyRead])
async def list_dependencies(
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> list[DependencyEdge]:
    """List all dependencies within a project."""
    edges = await service.list_edges(project.id)
    logger.debug(f"Listed {len(edges)} dependencies for project={project.id}")
    return edges


@router.delete("/{project_id}/dependencies/{edge_id}", response_model=MutationRead)
async def delete_dependency(
    edge_id: uuid.UUID,
    project: Project = Depends(get_project),
    service: ScheduleMutationService = Depends(get_schedule_service),
) -> MutationRead:
    """Delete a dependency; its successor may now start earlier."""
    result = await service.remove_edge(project.id, edge_id)
    return mutation_response(result)
