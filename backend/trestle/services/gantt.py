"""
Gantt adapter.

Maps a schedule snapshot onto the record shape the Gantt widget consumes
(``id, name, start, end, progress, dependencies``), and parses such records
back. ``dependencies`` is the comma-joined predecessor id list.
"""

from typing import Any, Iterable

from trestle.schemas.schedule import GanttTask
from trestle.services.snapshot import ScheduleSnapshot, TaskSchedule

CRITICAL_CLASS = "bar-critical"


def bar_class(entry: TaskSchedule) -> str:
    """CSS classes for a bar: ``status-<slug>`` plus the critical marker."""
    classes = ["status-" + "-".join(entry.status.value.lower().split())]
    if entry.on_critical_path:
        classes.append(CRITICAL_CLASS)
    return " ".join(classes)


def to_gantt_tasks(snapshot: ScheduleSnapshot) -> list[GanttTask]:
    return [
        GanttTask(
            id=str(entry.task_id),
            name=entry.name,
            start=entry.earliest_start,
            end=entry.earliest_finish,
            progress=round(entry.progress),
            dependencies=",".join(str(p) for p in entry.predecessor_ids),
            custom_class=bar_class(entry),
        )
        for entry in snapshot.entries
    ]


def to_gantt_records(snapshot: ScheduleSnapshot) -> list[dict[str, Any]]:
    """Serialize to JSON-ready dicts (dates as ISO strings)."""
    return [task.model_dump(mode="json") for task in to_gantt_tasks(snapshot)]


def from_gantt_records(records: Iterable[dict[str, Any]]) -> list[GanttTask]:
    return [GanttTask.model_validate(record) for record in records]
