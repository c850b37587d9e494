"""
Dependency validator: the gatekeeper for every graph-altering change.

Checks run against the in-memory graph before anything is applied:
- task attributes (date window, progress range)
- membership (unknown task, task from another project)
- self dependency, duplicate edge
- cycles, by DFS reachability over dependency + containment edges

Lag is never rejected. Lags that pull a derived start before the project's
inception are reported as warnings after the forward pass.
"""

import uuid
from datetime import date
from typing import Optional

import networkx as nx

from trestle.domain import DependencyEdge, TaskRecord
from trestle.exceptions import (
    CrossProjectEdgeError,
    CycleDetectedError,
    DuplicateEdgeError,
    SelfDependencyError,
    UnknownTaskError,
    ValidationError,
)
from trestle.logging_config import get_logger
from trestle.services.graph import ProjectGraph
from trestle.services.snapshot import ScheduleWarning
from trestle.store.base import TaskStore

logger = get_logger(__name__)


def validate_task_attributes(task: TaskRecord) -> None:
    errors = []
    if not task.name or not task.name.strip():
        errors.append({"loc": ["body", "name"], "msg": "Task name is required", "type": "value_error"})
    if task.due_date < task.start_date:
        errors.append({
            "loc": ["body", "due_date"],
            "msg": "Due date cannot be before start date",
            "type": "value_error",
        })
    if not 0 <= task.progress <= 100:
        errors.append({
            "loc": ["body", "progress"],
            "msg": "Progress must be between 0 and 100",
            "type": "value_error",
        })
    if errors:
        raise ValidationError(errors[0]["msg"], details=errors)


async def check_membership(
    store: TaskStore,
    graph: ProjectGraph,
    task_id: uuid.UUID,
) -> None:
    """Raise if task_id is not part of the graph's project."""
    if task_id in graph:
        return
    other = await store.get_task(task_id)
    if other is None:
        raise UnknownTaskError(str(task_id), str(graph.project_id))
    logger.warning(
        f"Cross-project link rejected: task {task_id} belongs to {other.project_id}, "
        f"not {graph.project_id}"
    )
    raise CrossProjectEdgeError(str(other.project_id), str(graph.project_id))


def find_path(
    combined: nx.DiGraph,
    source: uuid.UUID,
    target: uuid.UUID,
) -> Optional[list[uuid.UUID]]:
    """
    Depth-first search from source; returns the tree path to target or None.
    """
    if source not in combined or target not in combined:
        return None
    if source == target:
        return [source]
    parents = nx.dfs_predecessors(combined, source)
    if target not in parents:
        return None
    path = [target]
    while path[-1] != source:
        path.append(parents[path[-1]])
    path.reverse()
    return path


def validate_edge(graph: ProjectGraph, edge: DependencyEdge) -> None:
    """
    Check a proposed dependency against the graph it would join.

    Membership must already have been checked with check_membership.
    """
    if edge.predecessor_id == edge.successor_id:
        logger.warning(f"Self-dependency rejected: {edge.predecessor_id}")
        raise SelfDependencyError(str(edge.predecessor_id))

    if graph.find_edge(edge.triple) is not None:
        logger.warning(
            f"Duplicate dependency rejected: {edge.predecessor_id} -> {edge.successor_id} "
            f"({edge.dependency_type.value})"
        )
        raise DuplicateEdgeError(
            str(edge.predecessor_id),
            str(edge.successor_id),
            edge.dependency_type.value,
        )

    # The new edge closes a cycle iff the predecessor is already reachable
    # from the successor.
    path = find_path(graph.combined_graph(), edge.successor_id, edge.predecessor_id)
    if path is not None:
        cycle = [edge.predecessor_id, *path]
        logger.warning(f"Cycle detected: {' -> '.join(str(n) for n in cycle)}")
        raise CycleDetectedError(cycle)


def validate_parent(
    graph: ProjectGraph,
    task_id: uuid.UUID,
    parent_id: Optional[uuid.UUID],
) -> None:
    """Check that making parent_id the parent of task_id keeps the graph acyclic."""
    if parent_id is None:
        return
    if parent_id == task_id:
        logger.warning(f"Self-parenting rejected: {task_id}")
        raise CycleDetectedError([task_id, task_id])

    path = find_path(graph.combined_graph(), task_id, parent_id)
    if path is not None:
        cycle = [parent_id, *path]
        logger.warning(f"Containment cycle detected: {' -> '.join(str(n) for n in cycle)}")
        raise CycleDetectedError(cycle)


def lag_warnings(
    graph: ProjectGraph,
    earliest_start: dict[uuid.UUID, date],
) -> list[ScheduleWarning]:
    """
    Report tasks whose lead time pulls their start before project inception.

    Inception is the earliest stored start date in the project.
    """
    if not graph.tasks:
        return []
    inception = min(task.start_date for task in graph.tasks.values())
    warnings = []
    for task_id in sorted(graph.tasks, key=str):
        es = earliest_start.get(task_id)
        if es is None or es >= inception:
            continue
        if not graph.incoming(task_id):
            continue
        warnings.append(ScheduleWarning(
            kind="invalid_lag",
            task_id=task_id,
            message=(
                f"Derived start {es.isoformat()} is before project inception "
                f"{inception.isoformat()}"
            ),
        ))
    return warnings
