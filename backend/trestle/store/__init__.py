from trestle.store.base import TaskStore
from trestle.store.memory import InMemoryTaskStore
from trestle.store.sql import SqlTaskStore

__all__ = ["TaskStore", "InMemoryTaskStore", "SqlTaskStore"]
