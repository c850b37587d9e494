from trestle.schemas.project import ProjectCreate, ProjectUpdate, ProjectRead
from trestle.schemas.task import TaskCreate, TaskUpdate, TaskRead, ParentUpdate
from trestle.schemas.dependency import DependencyCreate, DependencyRead
from trestle.schemas.schedule import (
    GanttTask,
    MutationRead,
    ScheduleRead,
    ScheduleWarningRead,
    TaskScheduleRead,
)

__all__ = [
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectRead",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "ParentUpdate",
    "DependencyCreate",
    "DependencyRead",
    "GanttTask",
    "MutationRead",
    "ScheduleRead",
    "ScheduleWarningRead",
    "TaskScheduleRead",
]
