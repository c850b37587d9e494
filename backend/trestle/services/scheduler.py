"""
Schedule mutation service: the public facade of the scheduling engine.

Every mutating call follows the same steps under a per-project lock:
1. Load the project graph from the task store
2. Validate the requested change against it (reject on any violation)
3. Apply the change to the in-memory graph
4. Recompute the critical path and the progress roll-up
5. Commit one change set through the store, then swap in the new snapshot

A rejected call commits nothing; the previous snapshot stays current and is
attached to the raised exception as ``exc.snapshot``.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from trestle.domain import (
    ChangeSet,
    DependencyEdge,
    DependencyType,
    TaskPriority,
    TaskRecord,
    TaskStatus,
)
from trestle.exceptions import TrestleException, ValidationError
from trestle.logging_config import get_logger
from trestle.services import critical_path, progress
from trestle.services.gantt import to_gantt_records
from trestle.services.graph import ProjectGraph, load
from trestle.services.snapshot import ScheduleSnapshot, TaskSchedule
from trestle.services.validator import (
    check_membership,
    lag_warnings,
    validate_edge,
    validate_parent,
    validate_task_attributes,
)
from trestle.store.base import TaskStore

logger = get_logger(__name__)

TASK_FIELDS = frozenset({
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
})
UPDATABLE_FIELDS = TASK_FIELDS - {"parent_id"}
NULLABLE_FIELDS = frozenset({"parent_id", "actual_completion_date"})
DATE_FIELDS = ("start_date", "due_date", "actual_completion_date")
SORT_FIELDS = frozenset({"start_date", "due_date", "name", "status", "priority", "progress"})

_date_adapter = TypeAdapter(date)

Apply = Callable[[ProjectGraph], Awaitable[tuple[Optional[uuid.UUID], ChangeSet]]]


@dataclass(frozen=True)
class MutationResult:
    """Outcome of an accepted mutation."""
    entity_id: Optional[uuid.UUID]
    snapshot: ScheduleSnapshot


@dataclass(frozen=True)
class TaskPage:
    """One page of a task listing; ``total`` counts every match."""
    items: list[TaskRecord]
    total: int
    page: int
    limit: Optional[int]


_PRIORITY_RANK = {p: i for i, p in enumerate(TaskPriority)}
_STATUS_RANK = {s: i for i, s in enumerate(TaskStatus)}


def _sort_value(task: TaskRecord, sort: str):
    # Priority and status sort by severity and workflow order, not by label
    if sort == "priority":
        return _PRIORITY_RANK[task.priority]
    if sort == "status":
        return _STATUS_RANK[task.status]
    if sort == "name":
        return task.name.casefold()
    return getattr(task, sort)


def compute_snapshot(graph: ProjectGraph, today: date) -> ScheduleSnapshot:
    """Run CPM and the progress roll-up over a whole project graph."""
    if not graph.tasks:
        return ScheduleSnapshot.empty(graph.project_id, today)

    cpm = critical_path.calculate(graph)
    rollup = progress.aggregate(graph, cpm, today)

    entries = tuple(
        TaskSchedule(
            task_id=task_id,
            name=graph.tasks[task_id].name,
            parent_id=graph.tasks[task_id].parent_id,
            predecessor_ids=tuple(graph.predecessor_ids(task_id)),
            duration_days=graph.tasks[task_id].duration_days,
            earliest_start=cpm.earliest_start[task_id],
            earliest_finish=cpm.earliest_finish[task_id],
            latest_start=cpm.latest_start[task_id],
            latest_finish=cpm.latest_finish[task_id],
            total_float=cpm.total_float[task_id],
            on_critical_path=cpm.is_critical(task_id),
            progress=rollup.progress[task_id],
            status=rollup.status[task_id],
        )
        for task_id in cpm.order
    )
    return ScheduleSnapshot(
        project_id=graph.project_id,
        as_of=today,
        entries=entries,
        project_start=cpm.project_start,
        project_finish=cpm.project_finish,
        critical_path=tuple(cpm.critical_chain),
        warnings=tuple(lag_warnings(graph, cpm.earliest_start)),
    )


def _coerce_task_fields(attrs: dict, allowed: frozenset) -> dict:
    unknown = sorted(set(attrs) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown task field(s): {', '.join(unknown)}",
            details=[
                {"loc": ["body", name], "msg": "Unknown field", "type": "value_error"}
                for name in unknown
            ],
        )
    # Only the nullable fields may be cleared; a null anywhere else means "unchanged"
    coerced = {
        key: value for key, value in attrs.items()
        if value is not None or key in NULLABLE_FIELDS
    }
    try:
        if "status" in coerced:
            coerced["status"] = TaskStatus(coerced["status"])
        if "priority" in coerced:
            coerced["priority"] = TaskPriority(coerced["priority"])
    except ValueError as exc:
        raise ValidationError(str(exc))

    errors = []
    for key in DATE_FIELDS:
        if coerced.get(key) is None:
            continue
        try:
            coerced[key] = _date_adapter.validate_python(coerced[key])
        except PydanticValidationError as exc:
            errors.extend(
                {"loc": ["body", key], "msg": err["msg"], "type": err["type"]}
                for err in exc.errors()
            )
    if errors:
        raise ValidationError("Invalid task date(s)", details=errors)
    return coerced


class ScheduleMutationService:
    """
    Owns the per-project locks and the last good snapshot of each project.

    Mutations on one project are serialized; different projects never share
    a lock. Reads are served from the cached snapshot without locking.
    """

    def __init__(self, store: TaskStore, clock: Callable[[], date] = date.today):
        self._store = store
        self._clock = clock
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self._snapshots: dict[uuid.UUID, ScheduleSnapshot] = {}

    @property
    def store(self) -> TaskStore:
        return self._store

    def _lock(self, project_id: uuid.UUID) -> asyncio.Lock:
        return self._locks.setdefault(project_id, asyncio.Lock())

    def invalidate(self, project_id: uuid.UUID) -> None:
        """Forget the cached snapshot, e.g. after the project deadline changed."""
        self._snapshots.pop(project_id, None)

    def forget(self, project_id: uuid.UUID) -> None:
        """Drop all state held for a deleted project."""
        self._snapshots.pop(project_id, None)
        lock = self._locks.get(project_id)
        if lock is not None and not lock.locked():
            del self._locks[project_id]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_schedule(self, project_id: uuid.UUID) -> ScheduleSnapshot:
        """
        Return the last committed snapshot for a project.

        Computes one under the project lock when nothing is cached or the
        cached one was evaluated on an earlier day. Raises NotFoundError for a
        project without tasks.
        """
        today = self._clock()
        snapshot = self._snapshots.get(project_id)
        if snapshot is not None and snapshot.as_of == today:
            return snapshot

        async with self._lock(project_id):
            snapshot = self._snapshots.get(project_id)
            if snapshot is None or snapshot.as_of != today:
                graph = await load(self._store, project_id)
                snapshot = compute_snapshot(graph, today)
                self._snapshots[project_id] = snapshot
        return snapshot

    async def get_gantt(self, project_id: uuid.UUID) -> list[dict]:
        return to_gantt_records(await self.get_schedule(project_id))

    async def list_tasks(
        self,
        project_id: uuid.UUID,
        status: Optional[TaskStatus] = None,
        search: Optional[str] = None,
        sort: str = "start_date",
        order: str = "asc",
        page: int = 1,
        limit: Optional[int] = None,
    ) -> TaskPage:
        """
        List a project's tasks, filtered, sorted and paginated.

        ``search`` matches name, description and notes case-insensitively.
        Ties in the sort field fall back to name, then id. Without a limit
        every matching task is returned on page 1.
        """
        if sort not in SORT_FIELDS:
            raise ValidationError(
                f"Cannot sort tasks by '{sort}'",
                details=[{"loc": ["query", "sort"], "msg": f"Expected one of {sorted(SORT_FIELDS)}", "type": "value_error"}],
            )
        if order not in ("asc", "desc"):
            raise ValidationError(
                f"Unknown sort order '{order}'",
                details=[{"loc": ["query", "order"], "msg": "Expected 'asc' or 'desc'", "type": "value_error"}],
            )
        if page < 1 or (limit is not None and limit < 1):
            raise ValidationError("Page and limit must be positive")
        try:
            status = TaskStatus(status) if status is not None else None
        except ValueError as exc:
            raise ValidationError(str(exc))

        tasks = await self._store.list_tasks(project_id)
        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        if search:
            needle = search.casefold()
            tasks = [
                t for t in tasks
                if any(needle in (text or "").casefold() for text in (t.name, t.description, t.notes))
            ]

        tasks = sorted(tasks, key=lambda t: (t.name, str(t.id)))
        tasks.sort(key=lambda t: _sort_value(t, sort), reverse=order == "desc")

        total = len(tasks)
        if limit is not None:
            tasks = tasks[(page - 1) * limit:page * limit]
        elif page > 1:
            tasks = []
        return TaskPage(items=tasks, total=total, page=page, limit=limit)

    async def list_edges(self, project_id: uuid.UUID) -> list[DependencyEdge]:
        edges = await self._store.list_edges(project_id)
        return sorted(
            edges,
            key=lambda e: (str(e.predecessor_id), str(e.successor_id), e.dependency_type.value),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        project_id: uuid.UUID,
        apply: Apply,
        allow_empty: bool = False,
    ) -> MutationResult:
        async with self._lock(project_id):
            today = self._clock()
            prior = self._snapshots.get(project_id)
            try:
                graph = await load(self._store, project_id, allow_empty=allow_empty)
                if prior is None and graph.tasks:
                    prior = compute_snapshot(graph, today)
                    self._snapshots[project_id] = prior
                entity_id, changes = await apply(graph)
                snapshot = compute_snapshot(graph, today)
            except TrestleException as exc:
                exc.snapshot = prior
                raise

            commit = asyncio.ensure_future(self._commit(project_id, changes, snapshot))
            try:
                await asyncio.shield(commit)
            except asyncio.CancelledError:
                # Past validation: finish the commit before releasing the lock
                await commit
                raise
            return MutationResult(entity_id=entity_id, snapshot=snapshot)

    async def _commit(
        self,
        project_id: uuid.UUID,
        changes: ChangeSet,
        snapshot: ScheduleSnapshot,
    ) -> None:
        if not changes.is_empty():
            await self._store.commit(project_id, changes)
        if snapshot.entries:
            self._snapshots[project_id] = snapshot
        else:
            # Removing the last task leaves nothing to schedule
            self._snapshots.pop(project_id, None)

    async def propose_task(self, project_id: uuid.UUID, **attrs) -> MutationResult:
        """Admit a new task; ``attrs`` are TaskRecord fields."""
        fields = _coerce_task_fields(attrs, TASK_FIELDS)

        async def apply(graph: ProjectGraph):
            try:
                task = TaskRecord(id=uuid.uuid4(), project_id=project_id, **fields)
            except TypeError as exc:
                raise ValidationError(f"Incomplete task: {exc}")
            validate_task_attributes(task)
            if task.parent_id is not None:
                await check_membership(self._store, graph, task.parent_id)
            # A new node has no outgoing edges, so its parent link cannot close a cycle
            graph.add_task(task)
            logger.info(f"Admitting task {task.id} '{task.name}' in project {project_id}")
            return task.id, ChangeSet(upsert_tasks=[task])

        return await self._mutate(project_id, apply, allow_empty=True)

    async def update_task(
        self,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        **changes,
    ) -> MutationResult:
        """Change stored attributes of a task; the parent link has set_parent."""
        fields = _coerce_task_fields(changes, UPDATABLE_FIELDS)

        async def apply(graph: ProjectGraph):
            current = graph.get_task(task_id)
            if (
                "progress" in fields
                and graph.has_children(task_id)
                and fields["progress"] != current.progress
            ):
                raise ValidationError(
                    "Progress of a task with subtasks is derived from its subtasks",
                    details=[{"loc": ["body", "progress"], "msg": "Read-only for parent tasks", "type": "value_error"}],
                )
            updated = current.evolve(**fields)
            validate_task_attributes(updated)
            graph.replace_task(updated)
            logger.info(f"Updating task {task_id} in project {project_id}: {sorted(fields)}")
            return task_id, ChangeSet(upsert_tasks=[updated])

        return await self._mutate(project_id, apply)

    async def delete_task(self, project_id: uuid.UUID, task_id: uuid.UUID) -> MutationResult:
        """Remove a task with its edges; its subtasks move to the top level."""

        async def apply(graph: ProjectGraph):
            edge_ids, detached = graph.remove_task(task_id)
            logger.info(
                f"Deleting task {task_id} from project {project_id}: "
                f"{len(edge_ids)} edges dropped, {len(detached)} subtasks detached"
            )
            return task_id, ChangeSet(
                upsert_tasks=[graph.tasks[child_id] for child_id in detached],
                delete_task_ids=[task_id],
                delete_edge_ids=edge_ids,
            )

        return await self._mutate(project_id, apply)

    async def propose_edge(
        self,
        project_id: uuid.UUID,
        predecessor_id: uuid.UUID,
        successor_id: uuid.UUID,
        dependency_type: DependencyType | str = DependencyType.FINISH_TO_START,
        lag_days: int = 0,
    ) -> MutationResult:
        """Admit a typed dependency edge after full validation."""
        try:
            edge = DependencyEdge(
                predecessor_id=predecessor_id,
                successor_id=successor_id,
                dependency_type=DependencyType(dependency_type),
                lag_days=int(lag_days),
            )
        except ValueError as exc:
            raise ValidationError(str(exc))

        async def apply(graph: ProjectGraph):
            await check_membership(self._store, graph, predecessor_id)
            await check_membership(self._store, graph, successor_id)
            validate_edge(graph, edge)
            graph.add_edge(edge)
            logger.info(
                f"Admitting dependency {edge.id}: {predecessor_id} -> {successor_id} "
                f"({edge.dependency_type.value}, lag={edge.lag_days}) in project {project_id}"
            )
            return edge.id, ChangeSet(add_edges=[edge])

        return await self._mutate(project_id, apply)

    async def remove_edge(self, project_id: uuid.UUID, edge_id: uuid.UUID) -> MutationResult:

        async def apply(graph: ProjectGraph):
            edge = graph.remove_edge(edge_id)
            logger.info(
                f"Removing dependency {edge_id}: {edge.predecessor_id} -> {edge.successor_id} "
                f"in project {project_id}"
            )
            return edge_id, ChangeSet(delete_edge_ids=[edge_id])

        return await self._mutate(project_id, apply)

    async def set_parent(
        self,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        parent_id: Optional[uuid.UUID],
    ) -> MutationResult:
        """Move a task under parent_id, or to the top level when parent_id is None."""

        async def apply(graph: ProjectGraph):
            await check_membership(self._store, graph, task_id)
            if parent_id is not None:
                await check_membership(self._store, graph, parent_id)
            validate_parent(graph, task_id, parent_id)
            graph.set_parent(task_id, parent_id)
            logger.info(f"Setting parent of {task_id} to {parent_id} in project {project_id}")
            return task_id, ChangeSet(upsert_tasks=[graph.tasks[task_id]])

        return await self._mutate(project_id, apply)
