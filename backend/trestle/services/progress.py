"""
Progress and status roll-up from child tasks to their parents.

Leaf tasks keep their stored progress and status verbatim. A parent's
progress is the duration-weighted mean of its direct children's (already
rolled-up) progress; its status is derived from the children and from the
dependency constraints on them as of ``today``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta

from trestle.domain import DependencyType, TaskStatus
from trestle.services.critical_path import CriticalPathResult
from trestle.services.graph import ProjectGraph

_DONE = (TaskStatus.COMPLETED, TaskStatus.CANCELLED)
_BLOCKING_TYPES = (DependencyType.FINISH_TO_START, DependencyType.START_TO_START)


@dataclass
class Rollup:
    progress: dict[uuid.UUID, float] = field(default_factory=dict)
    status: dict[uuid.UUID, TaskStatus] = field(default_factory=dict)


def weighted_progress(weights: list[int], values: list[float]) -> float:
    total = sum(weights)
    if total <= 0:
        # Durations are clamped to >= 1 day, so this is a guard only
        return sum(values) / len(values) if values else 0.0
    return sum(w * v for w, v in zip(weights, values)) / total


def _base_status(children_status: list[TaskStatus], children_progress: list[float]) -> TaskStatus:
    if all(s == TaskStatus.COMPLETED for s in children_status):
        return TaskStatus.COMPLETED
    if any(p > 0 for p in children_progress):
        return TaskStatus.IN_PROGRESS
    return TaskStatus.TODO


def _is_held_up(
    graph: ProjectGraph,
    cpm: CriticalPathResult,
    rollup: Rollup,
    base_status: dict[uuid.UUID, TaskStatus],
    child_id: uuid.UUID,
    today: date,
) -> bool:
    """True when an FS/SS predecessor of child_id is overdue for its constraint."""
    if base_status[child_id] in _DONE:
        return False
    for edge in graph.incoming(child_id):
        if edge.dependency_type not in _BLOCKING_TYPES:
            continue
        pred = edge.predecessor_id
        lag = timedelta(days=edge.lag_days)
        pred_status = base_status[pred]
        if edge.dependency_type == DependencyType.FINISH_TO_START:
            if pred_status not in _DONE and today >= cpm.earliest_finish[pred] + lag:
                return True
        else:
            not_started = pred_status == TaskStatus.TODO and rollup.progress[pred] == 0
            if not_started and today >= cpm.earliest_start[pred] + lag:
                return True
    return False


def aggregate(graph: ProjectGraph, cpm: CriticalPathResult, today: date) -> Rollup:
    """
    Roll progress and status up the containment tree.

    Runs in reverse topological order, so every child is settled before its
    parent. The blocked check runs as a second pass because it looks at
    predecessors, which may sit anywhere in the order.
    """
    rollup = Rollup()
    parents = []

    for task_id in reversed(cpm.order):
        task = graph.tasks[task_id]
        children = graph.children(task_id)
        if not children:
            rollup.progress[task_id] = float(task.progress)
            rollup.status[task_id] = task.status
            continue

        parents.append(task_id)
        weights = [graph.tasks[c].duration_days for c in children]
        values = [rollup.progress[c] for c in children]
        rollup.progress[task_id] = round(weighted_progress(weights, values), 2)
        rollup.status[task_id] = _base_status(
            [rollup.status[c] for c in children], values
        )

    base_status = dict(rollup.status)
    for task_id in parents:
        if base_status[task_id] == TaskStatus.COMPLETED:
            continue
        if any(_is_held_up(graph, cpm, rollup, base_status, c, today) for c in graph.children(task_id)):
            rollup.status[task_id] = TaskStatus.BLOCKED

    return rollup
