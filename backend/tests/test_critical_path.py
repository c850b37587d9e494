"""
Test CPM calculation: forward/backward passes, float and the critical chain.

Durations are whole days and finish = start + duration, so a 2-day task
starting Jan 1 finishes Jan 3 and an FS successor (lag 0) starts Jan 3.
"""

from datetime import date

import pytest

from trestle.domain import DependencyType
from trestle.services import critical_path
from trestle.services.graph import ProjectGraph


def d(day: int, month: int = 1) -> date:
    return date(2024, month, day)


class TestLinearChain:

    def test_chain_is_fully_critical(self, project_id, make_task, link):
        """
        A (2d) -> B (3d) -> C (4d), all stored to start Jan 1.

        A: Jan 1 - Jan 3
        B: Jan 3 - Jan 6
        C: Jan 6 - Jan 10
        """
        a, b, c = make_task("A", days=2), make_task("B", days=3), make_task("C", days=4)
        graph = ProjectGraph.build(project_id, [a, b, c], [link(a, b), link(b, c)])

        result = critical_path.calculate(graph)

        assert result.earliest_start[b.id] == d(3)
        assert result.earliest_start[c.id] == d(6)
        assert result.earliest_finish[c.id] == d(10)
        assert all(result.total_float[t] == 0 for t in (a.id, b.id, c.id))
        assert (result.project_finish - result.project_start).days == 9
        assert result.critical_chain == [a.id, b.id, c.id]

    def test_lag_scenario(self, project_id, make_task, link):
        """
        A: Jan 1 -> Jan 3 (2d), B: Jan 1 -> Jan 5 (4d), A -> B FS lag 1.
        Expected: B starts Jan 4, finishes Jan 8; both critical.
        """
        a = make_task("A", start=d(1), days=2)
        b = make_task("B", start=d(1), days=4)
        graph = ProjectGraph.build(project_id, [a, b], [link(a, b, lag=1)])

        result = critical_path.calculate(graph)

        assert result.earliest_start[b.id] == d(4)
        assert result.earliest_finish[b.id] == d(8)
        assert result.total_float[a.id] == 0
        assert result.is_critical(a.id) and result.is_critical(b.id)


class TestFloat:

    def test_short_branch_has_float(self, project_id, make_task, link):
        """
        Start -> Long (10d) -> End
        Start -> Short (2d) -> End
        Short can slip 8 days.
        """
        start = make_task("Start", days=1)
        long_ = make_task("Long", days=10)
        short = make_task("Short", days=2)
        end = make_task("End", days=1)
        graph = ProjectGraph.build(
            project_id,
            [start, long_, short, end],
            [link(start, long_), link(start, short), link(long_, end), link(short, end)],
        )

        result = critical_path.calculate(graph)

        assert result.total_float[short.id] == 8
        assert result.latest_start[short.id] == d(10)
        assert not result.is_critical(short.id)
        assert result.critical_chain == [start.id, long_.id, end.id]

    def test_stored_start_gives_float_to_independent_task(self, project_id, make_task):
        # Each sink is anchored to its own finish, not the project finish
        early = make_task("Early", start=d(1), days=2)
        late = make_task("Late", start=d(5), days=10)
        graph = ProjectGraph.build(project_id, [early, late])

        result = critical_path.calculate(graph)

        assert result.total_float[early.id] == 0
        assert result.total_float[late.id] == 0
        assert result.project_start == d(1)
        assert result.project_finish == d(15)

    def test_deadline_extends_latest_finish(self, project_id, make_task, link):
        a, b = make_task("A", days=2), make_task("B", days=3)
        graph = ProjectGraph.build(project_id, [a, b], [link(a, b)], deadline=d(10))

        result = critical_path.calculate(graph)

        # B finishes Jan 6 but may finish as late as Jan 10
        assert result.latest_finish[b.id] == d(10)
        assert result.total_float[b.id] == 4
        assert result.total_float[a.id] == 4
        assert result.critical_chain == []


class TestDependencyTypes:
    """A runs Jan 1 - Jan 5 (4d); B is 2d and stored to start Jan 1."""

    @pytest.mark.parametrize(
        "dependency_type, lag, expected_start",
        [
            (DependencyType.FINISH_TO_START, 0, d(5)),
            (DependencyType.FINISH_TO_START, 2, d(7)),
            (DependencyType.START_TO_START, 1, d(2)),
            (DependencyType.FINISH_TO_FINISH, 0, d(3)),
            (DependencyType.START_TO_FINISH, 3, d(2)),
        ],
    )
    def test_forward_pass(self, project_id, make_task, link, dependency_type, lag, expected_start):
        a = make_task("A", days=4)
        b = make_task("B", days=2)
        graph = ProjectGraph.build(project_id, [a, b], [link(a, b, dependency_type, lag)])

        result = critical_path.calculate(graph)

        assert result.earliest_start[b.id] == expected_start
        assert result.earliest_finish[b.id] == expected_start + (b.due_date - b.start_date)
        assert result.total_float[a.id] >= 0

    def test_start_to_start_predecessor_float(self, project_id, make_task, link):
        """
        A (4d) SS-> B (2d) lag 1: B runs Jan 2 - Jan 4 while A runs to Jan 5.
        B is a sink, so it has no room; its latest start comes back through the
        SS link as a latest finish of Jan 5 for A.
        """
        a = make_task("A", days=4)
        b = make_task("B", days=2)
        graph = ProjectGraph.build(
            project_id, [a, b], [link(a, b, DependencyType.START_TO_START, 1)]
        )

        result = critical_path.calculate(graph)

        assert result.total_float[b.id] == 0
        assert result.total_float[a.id] == 0
        assert result.latest_finish[a.id] == d(5)

    def test_strongest_constraint_wins(self, project_id, make_task, link):
        a = make_task("A", days=4)
        b = make_task("B", days=1)
        c = make_task("C", days=2)
        graph = ProjectGraph.build(
            project_id,
            [a, b, c],
            [link(a, c, DependencyType.START_TO_START), link(b, c, lag=5)],
        )

        result = critical_path.calculate(graph)

        # SS from A allows Jan 1; FS from B (Jan 2) + 5 pushes to Jan 7
        assert result.earliest_start[c.id] == d(7)


class TestContainment:

    def test_subtask_cannot_start_before_parent(self, project_id, make_task, link):
        before = make_task("Excavation", days=4)
        phase = make_task("Foundation", days=5)
        footing = make_task("Footings", days=2, parent_id=phase.id)
        graph = ProjectGraph.build(project_id, [before, phase, footing], [link(before, phase)])

        result = critical_path.calculate(graph)

        assert result.earliest_start[phase.id] == d(5)
        assert result.earliest_start[footing.id] == d(5)

    def test_parent_latest_start_bounded_by_child(self, project_id, make_task, link):
        phase = make_task("Framing", days=2)
        walls = make_task("Walls", days=6, parent_id=phase.id)
        graph = ProjectGraph.build(project_id, [phase, walls])

        result = critical_path.calculate(graph)

        # Walls sink: Jan 1 - Jan 7, no float; the phase cannot start later than Walls
        assert result.total_float[walls.id] == 0
        assert result.latest_start[phase.id] <= result.latest_start[walls.id]
        assert result.total_float[phase.id] == 0


class TestOrdering:

    def test_topological_order_ties_by_start_date(self, project_id, make_task):
        late = make_task("Late", start=d(9))
        early = make_task("Early", start=d(2))
        graph = ProjectGraph.build(project_id, [late, early])

        assert critical_path.topological_order(graph) == [early.id, late.id]

    def test_order_is_independent_of_insertion(self, project_id, make_task, link):
        tasks = [make_task(f"T{i}", days=i + 1) for i in range(6)]
        edges = [link(tasks[0], tasks[3]), link(tasks[1], tasks[3]), link(tasks[3], tasks[5])]

        forward = critical_path.calculate(ProjectGraph.build(project_id, tasks, edges))
        backward = critical_path.calculate(
            ProjectGraph.build(project_id, list(reversed(tasks)), list(reversed(edges)))
        )

        assert forward.order == backward.order
        assert forward.total_float == backward.total_float
        assert forward.critical_chain == backward.critical_chain
