"""
Tests for progress and status roll-up.
"""

from datetime import date

import pytest

from trestle.domain import DependencyType, TaskStatus
from trestle.services import critical_path, progress
from trestle.services.graph import ProjectGraph


def rollup_for(graph: ProjectGraph, today: date) -> progress.Rollup:
    return progress.aggregate(graph, critical_path.calculate(graph), today)


class TestWeightedProgress:

    def test_equal_weights(self):
        assert progress.weighted_progress([2, 2], [40, 60]) == 50

    def test_duration_weighted(self):
        assert progress.weighted_progress([1, 3], [0, 100]) == 75

    def test_zero_weights_fall_back_to_mean(self):
        assert progress.weighted_progress([0, 0], [20, 40]) == 30


class TestProgressRollup:

    def test_parent_is_mean_of_equal_children(self, project_id, make_task):
        parent = make_task("Plumbing", days=4)
        rough = make_task("Rough-in", days=2, progress=40, parent_id=parent.id)
        fixtures = make_task("Fixtures", days=2, progress=60, parent_id=parent.id)
        graph = ProjectGraph.build(project_id, [parent, rough, fixtures])

        rollup = rollup_for(graph, date(2024, 1, 1))

        assert rollup.progress[parent.id] == 50.0
        assert rollup.status[parent.id] == TaskStatus.IN_PROGRESS
        # Leaves are reported verbatim
        assert rollup.progress[rough.id] == 40.0

    def test_longer_children_weigh_more(self, project_id, make_task):
        parent = make_task("Electrical", days=4)
        short = make_task("Panel", days=1, progress=0, parent_id=parent.id)
        long_ = make_task(
            "Wiring", days=3, progress=100, status=TaskStatus.COMPLETED, parent_id=parent.id
        )
        graph = ProjectGraph.build(project_id, [parent, short, long_])

        assert rollup_for(graph, date(2024, 1, 1)).progress[parent.id] == 75.0

    def test_nested_parents_use_rolled_up_values(self, project_id, make_task):
        site = make_task("Site", days=10)
        phase = make_task("Phase", days=2, parent_id=site.id)
        a = make_task("A", days=1, progress=100, status=TaskStatus.COMPLETED, parent_id=phase.id)
        b = make_task("B", days=1, progress=0, parent_id=phase.id)
        other = make_task("Other", days=2, progress=0, parent_id=site.id)
        graph = ProjectGraph.build(project_id, [site, phase, a, b, other])

        rollup = rollup_for(graph, date(2024, 1, 1))

        assert rollup.progress[phase.id] == 50.0
        # Phase (2d, 50%) and Other (2d, 0%)
        assert rollup.progress[site.id] == 25.0

    def test_rounded_to_two_places(self, project_id, make_task):
        parent = make_task("Finishes", days=3)
        children = [
            make_task(f"Room {i}", days=1, progress=p, parent_id=parent.id)
            for i, p in enumerate([100, 0, 0])
        ]
        graph = ProjectGraph.build(project_id, [parent, *children])

        assert rollup_for(graph, date(2024, 1, 1)).progress[parent.id] == 33.33


class TestStatusRollup:

    def test_all_children_completed(self, project_id, make_task):
        parent = make_task("Roofing", days=2)
        kids = [
            make_task(n, days=1, progress=100, status=TaskStatus.COMPLETED, parent_id=parent.id)
            for n in ("Sheathing", "Shingles")
        ]
        graph = ProjectGraph.build(project_id, [parent, *kids])

        rollup = rollup_for(graph, date(2024, 1, 1))

        assert rollup.status[parent.id] == TaskStatus.COMPLETED
        assert rollup.progress[parent.id] == 100.0

    def test_nothing_started(self, project_id, make_task):
        parent = make_task("Insulation", days=2)
        kids = [make_task(n, days=1, parent_id=parent.id) for n in ("Walls", "Attic")]
        graph = ProjectGraph.build(project_id, [parent, *kids])

        assert rollup_for(graph, date(2023, 12, 1)).status[parent.id] == TaskStatus.TODO

    def test_in_progress_label_without_progress_is_to_do(self, project_id, make_task):
        """Only reported progress starts a parent, not a child's status label."""
        parent = make_task("Drywall", days=2)
        hang = make_task("Hang", days=1, status=TaskStatus.IN_PROGRESS, parent_id=parent.id)
        tape = make_task("Tape", days=1, parent_id=parent.id)
        graph = ProjectGraph.build(project_id, [parent, hang, tape])

        assert rollup_for(graph, date(2023, 12, 1)).status[parent.id] == TaskStatus.TODO

    def test_completed_child_without_progress_is_to_do(self, project_id, make_task):
        parent = make_task("Paint", days=2)
        primer = make_task("Primer", days=1, status=TaskStatus.COMPLETED, parent_id=parent.id)
        coat = make_task("Coat", days=1, parent_id=parent.id)
        graph = ProjectGraph.build(project_id, [parent, primer, coat])

        assert rollup_for(graph, date(2023, 12, 1)).status[parent.id] == TaskStatus.TODO

    def test_leaf_status_is_verbatim(self, project_id, make_task):
        leaf = make_task("Permit", status=TaskStatus.BLOCKED)
        graph = ProjectGraph.build(project_id, [leaf])

        assert rollup_for(graph, date(2024, 1, 1)).status[leaf.id] == TaskStatus.BLOCKED


class TestBlockedStatus:
    """
    Phase contains Pour (Jan 1 - Jan 3) and Cure, with Pour -> Cure.
    Pour is in progress at 50%.
    """

    @pytest.fixture
    def site(self, project_id, make_task, link):
        def _site(dependency_type=DependencyType.FINISH_TO_START, pour_status=TaskStatus.IN_PROGRESS,
                  pour_progress=50):
            phase = make_task("Foundation", days=4)
            pour = make_task(
                "Pour", days=2, status=pour_status, progress=pour_progress, parent_id=phase.id
            )
            cure = make_task("Cure", days=2, parent_id=phase.id)
            graph = ProjectGraph.build(
                project_id, [phase, pour, cure], [link(pour, cure, dependency_type)]
            )
            return graph, phase

        return _site

    def test_overdue_finish_blocks_parent(self, site):
        graph, phase = site()

        assert rollup_for(graph, date(2024, 1, 5)).status[phase.id] == TaskStatus.BLOCKED

    def test_not_yet_due(self, site):
        graph, phase = site()

        assert rollup_for(graph, date(2024, 1, 2)).status[phase.id] == TaskStatus.IN_PROGRESS

    def test_completed_predecessor_does_not_block(self, site):
        graph, phase = site(pour_status=TaskStatus.COMPLETED, pour_progress=100)

        assert rollup_for(graph, date(2024, 1, 5)).status[phase.id] == TaskStatus.IN_PROGRESS

    def test_unstarted_start_to_start_predecessor_blocks(self, site):
        graph, phase = site(
            DependencyType.START_TO_START, pour_status=TaskStatus.TODO, pour_progress=0
        )

        assert rollup_for(graph, date(2024, 1, 1)).status[phase.id] == TaskStatus.BLOCKED
        assert rollup_for(graph, date(2023, 12, 31)).status[phase.id] == TaskStatus.TODO

    def test_finish_to_finish_never_blocks(self, site):
        graph, phase = site(DependencyType.FINISH_TO_FINISH)

        assert rollup_for(graph, date(2024, 2, 1)).status[phase.id] == TaskStatus.IN_PROGRESS
