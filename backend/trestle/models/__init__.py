from trestle.models.project import Project
from trestle.models.task import Task
from trestle.models.dependency import Dependency

__all__ = ["Project", "Task", "Dependency"]
