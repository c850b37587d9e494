"""
Critical Path Method (CPM) implementation.

Calculates, over dependency edges typed FS/SS/FF/SF with lag and over
parent -> child containment:
- Forward pass: Earliest Start (ES), Earliest Finish (EF)
- Backward pass: Latest Start (LS), Latest Finish (LF)
- Total float: LS - ES (or LF - EF)
- Critical set: tasks with zero float, and one deterministic critical chain

Dates are whole days and finish = start + duration, so a 2-day task that
starts Jan 1 finishes Jan 3 and an FS successor with lag 0 starts Jan 3.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

import networkx as nx

from trestle.domain import DependencyEdge, DependencyType
from trestle.exceptions import InternalInconsistencyError
from trestle.logging_config import get_logger
from trestle.services.graph import ProjectGraph

logger = get_logger(__name__)


@dataclass
class CriticalPathResult:
    """Per-task CPM values for one project."""
    order: list[uuid.UUID]
    earliest_start: dict[uuid.UUID, date] = field(default_factory=dict)
    earliest_finish: dict[uuid.UUID, date] = field(default_factory=dict)
    latest_start: dict[uuid.UUID, date] = field(default_factory=dict)
    latest_finish: dict[uuid.UUID, date] = field(default_factory=dict)
    total_float: dict[uuid.UUID, int] = field(default_factory=dict)
    critical_chain: list[uuid.UUID] = field(default_factory=list)

    def is_critical(self, task_id: uuid.UUID) -> bool:
        return self.total_float[task_id] == 0

    @property
    def project_start(self) -> Optional[date]:
        return min(self.earliest_start.values()) if self.earliest_start else None

    @property
    def project_finish(self) -> Optional[date]:
        return max(self.earliest_finish.values()) if self.earliest_finish else None


def topological_order(graph: ProjectGraph) -> list[uuid.UUID]:
    """
    Order tasks so every predecessor and parent precedes its dependents.

    Kahn's algorithm over the combined edge set; ties are broken by stored
    start date, then task id, so the order never depends on insertion order.
    """
    combined = graph.combined_graph()

    def sort_key(task_id: uuid.UUID) -> tuple[str, str]:
        return (graph.tasks[task_id].start_date.isoformat(), str(task_id))

    try:
        order = list(nx.lexicographical_topological_sort(combined, key=sort_key))
    except nx.NetworkXUnfeasible:
        logger.error(f"Cycle found while ordering project {graph.project_id}; validator let it through")
        raise InternalInconsistencyError(
            "Task graph could not be ordered", project_id=str(graph.project_id)
        )

    if len(order) != len(graph.tasks):
        logger.error(
            f"Topological order covers {len(order)} of {len(graph.tasks)} tasks "
            f"in project {graph.project_id}"
        )
        raise InternalInconsistencyError(
            "Task graph ordering is incomplete", project_id=str(graph.project_id)
        )
    return order


def _days(n: int) -> timedelta:
    return timedelta(days=n)


def forward_constraint(
    edge: DependencyEdge,
    es: dict[uuid.UUID, date],
    ef: dict[uuid.UUID, date],
    duration: int,
) -> date:
    """Earliest start the edge allows for its successor."""
    pred = edge.predecessor_id
    if edge.dependency_type == DependencyType.FINISH_TO_START:
        return ef[pred] + _days(edge.lag_days)
    if edge.dependency_type == DependencyType.START_TO_START:
        return es[pred] + _days(edge.lag_days)
    if edge.dependency_type == DependencyType.FINISH_TO_FINISH:
        return ef[pred] + _days(edge.lag_days - duration)
    # START_TO_FINISH
    return es[pred] + _days(edge.lag_days - duration)


def backward_constraint(
    edge: DependencyEdge,
    ls: dict[uuid.UUID, date],
    lf: dict[uuid.UUID, date],
    duration: int,
) -> date:
    """Latest finish the edge allows for its predecessor."""
    succ = edge.successor_id
    if edge.dependency_type == DependencyType.FINISH_TO_START:
        return ls[succ] - _days(edge.lag_days)
    if edge.dependency_type == DependencyType.START_TO_START:
        return ls[succ] - _days(edge.lag_days - duration)
    if edge.dependency_type == DependencyType.FINISH_TO_FINISH:
        return lf[succ] - _days(edge.lag_days)
    # START_TO_FINISH
    return lf[succ] - _days(edge.lag_days - duration)


def calculate(graph: ProjectGraph) -> CriticalPathResult:
    """
    Calculate CPM forward and backward passes for the whole project.

    Forward Pass: ES = max over incoming constraints (stored start date when
    a task has no dependencies), never before the parent's ES. EF = ES + d.
    Backward Pass: LF = min over outgoing constraints; a sink's LF is its EF,
    or the project deadline when that is later. LS = LF - d.
    """
    order = topological_order(graph)
    result = CriticalPathResult(order=order)
    es, ef = result.earliest_start, result.earliest_finish
    ls, lf = result.latest_start, result.latest_finish

    # =========================================================================
    # Forward Pass
    # =========================================================================
    for task_id in order:
        task = graph.tasks[task_id]
        duration = task.duration_days
        incoming = graph.incoming(task_id)

        if incoming:
            start = max(forward_constraint(edge, es, ef, duration) for edge in incoming)
        else:
            start = task.start_date

        # A subtask cannot start before its parent starts
        if task.parent_id is not None:
            start = max(start, es[task.parent_id])

        es[task_id] = start
        ef[task_id] = start + _days(duration)

    # =========================================================================
    # Backward Pass
    # =========================================================================
    for task_id in reversed(order):
        duration = graph.tasks[task_id].duration_days
        candidates = [
            backward_constraint(edge, ls, lf, duration)
            for edge in graph.outgoing(task_id)
        ]
        candidates.extend(ls[child_id] + _days(duration) for child_id in graph.children(task_id))

        if candidates:
            finish = min(candidates)
        else:
            finish = ef[task_id]
            if graph.deadline is not None and graph.deadline > finish:
                finish = graph.deadline

        lf[task_id] = finish
        ls[task_id] = finish - _days(duration)

    # =========================================================================
    # Float and critical chain
    # =========================================================================
    for task_id in order:
        slack = (ls[task_id] - es[task_id]).days
        if slack < 0:
            logger.error(f"Negative float {slack} for task {task_id} in project {graph.project_id}")
            raise InternalInconsistencyError(
                f"Negative float computed for task {task_id}",
                project_id=str(graph.project_id),
            )
        result.total_float[task_id] = slack

    result.critical_chain = critical_chain(graph, result)

    logger.debug(
        f"CPM for project {graph.project_id}: {len(order)} tasks, "
        f"{sum(1 for t in order if result.is_critical(t))} critical"
    )
    return result


def _driving_predecessors(
    graph: ProjectGraph,
    result: CriticalPathResult,
    task_id: uuid.UUID,
) -> list[uuid.UUID]:
    """Critical tasks whose constraint is what fixes task_id's earliest start."""
    es, ef = result.earliest_start, result.earliest_finish
    duration = graph.tasks[task_id].duration_days
    drivers = set()
    for edge in graph.incoming(task_id):
        if forward_constraint(edge, es, ef, duration) == es[task_id]:
            drivers.add(edge.predecessor_id)
    parent_id = graph.tasks[task_id].parent_id
    if parent_id is not None and es[parent_id] == es[task_id]:
        drivers.add(parent_id)
    return sorted((d for d in drivers if result.is_critical(d)), key=str)


def critical_chain(graph: ProjectGraph, result: CriticalPathResult) -> list[uuid.UUID]:
    """
    Pick one zero-float chain for callers that need "the" critical path.

    The chain ends at the critical task with the latest finish (ties by task
    id) and walks back through driving critical predecessors, again taking
    the lowest task id on ties.
    """
    critical = [t for t in result.order if result.is_critical(t)]
    if not critical:
        return []

    end = min(critical, key=lambda t: (-result.earliest_finish[t].toordinal(), str(t)))
    chain = [end]
    drivers = _driving_predecessors(graph, result, end)
    while drivers:
        chain.append(drivers[0])
        drivers = _driving_predecessors(graph, result, drivers[0])
    chain.reverse()
    return chain
