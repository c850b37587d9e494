"""
Graph index for one project, built on NetworkX.

This module handles:
- Loading a project's tasks and dependency edges from the task store
- Structural mutations (edges, parent links, tasks) on the in-memory graph
- The combined view used for ordering and reachability: explicit
  dependency edges plus an implicit parent -> child containment edge

Mutations reject unknown tasks and duplicate edges, but never check for
cycles; that is the validator's job.
"""

import uuid
from datetime import date
from typing import Iterable, Optional

import networkx as nx

from trestle.domain import DependencyEdge, TaskRecord
from trestle.exceptions import DuplicateEdgeError, NotFoundError, UnknownTaskError
from trestle.store.base import TaskStore

CONTAINMENT = "containment"
DEPENDENCY = "dependency"


class ProjectGraph:
    """
    Adjacency structure for a single project.

    Dependency edges live in a MultiDiGraph keyed by edge id, since the same
    pair of tasks may be linked by edges of different types. Parent links are
    kept on the task records, with a reverse children index.
    """

    def __init__(self, project_id: uuid.UUID, deadline: Optional[date] = None):
        self.project_id = project_id
        self.deadline = deadline
        self.tasks: dict[uuid.UUID, TaskRecord] = {}
        self.edges: dict[uuid.UUID, DependencyEdge] = {}
        self._dependencies = nx.MultiDiGraph()
        self._children: dict[uuid.UUID, set[uuid.UUID]] = {}

    @classmethod
    def build(
        cls,
        project_id: uuid.UUID,
        tasks: Iterable[TaskRecord],
        edges: Iterable[DependencyEdge] = (),
        deadline: Optional[date] = None,
    ) -> "ProjectGraph":
        graph = cls(project_id, deadline)
        tasks = list(tasks)
        for task in tasks:
            graph.tasks[task.id] = task
            graph._dependencies.add_node(task.id)
        for task in tasks:
            if task.parent_id is not None:
                graph._require(task.parent_id)
                graph._children.setdefault(task.parent_id, set()).add(task.id)
        for edge in edges:
            graph.add_edge(edge)
        return graph

    def __contains__(self, task_id: uuid.UUID) -> bool:
        return task_id in self.tasks

    def __len__(self) -> int:
        return len(self.tasks)

    def _require(self, task_id: uuid.UUID) -> TaskRecord:
        task = self.tasks.get(task_id)
        if task is None:
            raise UnknownTaskError(str(task_id), str(self.project_id))
        return task

    def get_task(self, task_id: uuid.UUID) -> TaskRecord:
        return self._require(task_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(self, task: TaskRecord) -> None:
        if task.parent_id is not None:
            self._require(task.parent_id)
        self.tasks[task.id] = task
        self._dependencies.add_node(task.id)
        if task.parent_id is not None:
            self._children.setdefault(task.parent_id, set()).add(task.id)

    def replace_task(self, task: TaskRecord) -> None:
        """Swap in new attributes for an existing task; parent changes go through set_parent."""
        current = self._require(task.id)
        if task.parent_id != current.parent_id:
            self.set_parent(task.id, task.parent_id)
            current = self.tasks[task.id]
        self.tasks[task.id] = task.evolve(parent_id=current.parent_id)

    def remove_task(self, task_id: uuid.UUID) -> tuple[list[uuid.UUID], list[uuid.UUID]]:
        """
        Drop a task, every edge touching it, and its children's parent link.

        Returns (removed edge ids, detached child ids).
        """
        task = self._require(task_id)
        touching = sorted(
            (e.id for e in self.edges.values()
             if task_id in (e.predecessor_id, e.successor_id)),
            key=str,
        )
        for edge_id in touching:
            self.remove_edge(edge_id)

        detached = self.children(task_id)
        for child_id in detached:
            self.set_parent(child_id, None)

        if task.parent_id is not None:
            self._children.get(task.parent_id, set()).discard(task_id)
        self._children.pop(task_id, None)
        self._dependencies.remove_node(task_id)
        del self.tasks[task_id]
        return touching, detached

    # ------------------------------------------------------------------
    # Edges and parent links
    # ------------------------------------------------------------------

    def find_edge(self, triple) -> Optional[DependencyEdge]:
        predecessor_id, successor_id, dependency_type = triple
        if not self._dependencies.has_edge(predecessor_id, successor_id):
            return None
        for edge_id in self._dependencies[predecessor_id][successor_id]:
            edge = self.edges[edge_id]
            if edge.dependency_type == dependency_type:
                return edge
        return None

    def add_edge(self, edge: DependencyEdge) -> None:
        self._require(edge.predecessor_id)
        self._require(edge.successor_id)
        if self.find_edge(edge.triple) is not None:
            raise DuplicateEdgeError(
                str(edge.predecessor_id),
                str(edge.successor_id),
                edge.dependency_type.value,
            )
        self.edges[edge.id] = edge
        self._dependencies.add_edge(edge.predecessor_id, edge.successor_id, key=edge.id)

    def remove_edge(self, edge_id: uuid.UUID) -> DependencyEdge:
        edge = self.edges.pop(edge_id, None)
        if edge is None:
            raise NotFoundError("Dependency", str(edge_id))
        self._dependencies.remove_edge(edge.predecessor_id, edge.successor_id, key=edge_id)
        return edge

    def set_parent(self, task_id: uuid.UUID, parent_id: Optional[uuid.UUID]) -> None:
        task = self._require(task_id)
        if parent_id is not None:
            self._require(parent_id)
        if task.parent_id is not None:
            self._children.get(task.parent_id, set()).discard(task_id)
        if parent_id is not None:
            self._children.setdefault(parent_id, set()).add(task_id)
        self.tasks[task_id] = task.evolve(parent_id=parent_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def incoming(self, task_id: uuid.UUID) -> list[DependencyEdge]:
        return sorted(
            (self.edges[key] for _, _, key in self._dependencies.in_edges(task_id, keys=True)),
            key=lambda e: (str(e.predecessor_id), e.dependency_type.value, str(e.id)),
        )

    def outgoing(self, task_id: uuid.UUID) -> list[DependencyEdge]:
        return sorted(
            (self.edges[key] for _, _, key in self._dependencies.out_edges(task_id, keys=True)),
            key=lambda e: (str(e.successor_id), e.dependency_type.value, str(e.id)),
        )

    def predecessor_ids(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        return sorted(set(self._dependencies.predecessors(task_id)), key=str)

    def children(self, task_id: uuid.UUID) -> list[uuid.UUID]:
        return sorted(self._children.get(task_id, ()), key=str)

    def has_children(self, task_id: uuid.UUID) -> bool:
        return bool(self._children.get(task_id))

    def combined_graph(self) -> nx.DiGraph:
        """
        Dependencies plus containment as one simple DiGraph.

        Each edge carries a ``kinds`` set so callers can tell a dependency
        from a containment link when both join the same pair.
        """
        combined = nx.DiGraph()
        combined.add_nodes_from(sorted(self.tasks, key=str))
        pairs = sorted(set(self._dependencies.edges()), key=lambda p: (str(p[0]), str(p[1])))
        for predecessor_id, successor_id in pairs:
            combined.add_edge(predecessor_id, successor_id, kinds={DEPENDENCY})
        for parent_id in sorted(self._children, key=str):
            for child_id in self.children(parent_id):
                if combined.has_edge(parent_id, child_id):
                    combined[parent_id][child_id]["kinds"].add(CONTAINMENT)
                else:
                    combined.add_edge(parent_id, child_id, kinds={CONTAINMENT})
        return combined


async def load(
    store: TaskStore,
    project_id: uuid.UUID,
    allow_empty: bool = False,
) -> ProjectGraph:
    """
    Build the graph for a project from the task store.

    Raises NotFoundError when the project has no tasks, unless allow_empty is
    set (used when admitting a project's first task).
    """
    tasks = await store.list_tasks(project_id)
    if not tasks and not allow_empty:
        raise NotFoundError("Project tasks", str(project_id))
    edges = await store.list_edges(project_id)
    deadline = await store.get_project_deadline(project_id)
    return ProjectGraph.build(project_id, tasks, edges, deadline)
