"""Tests for sprint capacity and execution."""

import pytest

from sprintsim.models import Defect, Feature, TaskStatus, TestTask
from sprintsim.simulation import SprintCapacityError, SprintError


def _feature(project, size, status=TaskStatus.NEW):
    feature = Feature(project.get_next_id(), f"F{size}", project, size=size, status=status)
    project.add_to_backlog(feature)
    return feature


def _test_task(project, size, features=()):
    task = TestTask(project.get_next_id(), f"T{size}", project, "exploratory", features, size=size)
    project.add_to_backlog(task)
    return task


class TestSprintCapacity:
    """Tests for capacity enforcement on insertion."""

    def test_remaining_effort(self, project):
        sprint = project.new_sprint()
        for size in (8, 12, 6):
            sprint.add_dev_task(_feature(project, size))
        assert sprint.remaining_dev_effort() == 24

        for size in (4, 6, 5):
            sprint.add_test_task(_test_task(project, size))
        assert sprint.remaining_test_effort() == 15

        with pytest.raises(SprintCapacityError):
            sprint.add_test_task(_test_task(project, 16))
        assert sprint.remaining_test_effort() == 15
        assert len(sprint.test_tasks) == 3

    def test_fill_execute_then_test_sprint(self, project):
        features = [_feature(project, size) for size in (8, 12, 6)]
        first = project.new_sprint()
        assert first.fill_dev_sprint() == sorted(features, key=lambda f: f.size)
        first.done()

        assert all(f.is_done() for f in features)
        assert first.remaining_dev_effort() == 24

        second = project.new_sprint()
        knowledge = TestTask(
            project.get_next_id(), "Knowledge", project, "gather_knowledge", features, size=4
        )
        project.add_to_backlog(knowledge)
        second.add_test_task(knowledge)
        for size in (6, 5):
            second.add_test_task(_test_task(project, size, features))
        assert second.remaining_test_effort() == 15

        with pytest.raises(SprintCapacityError):
            second.add_test_task(_test_task(project, 16, features))
        assert second.remaining_test_effort() == 15

    def test_exact_fit(self, project):
        sprint = project.new_sprint()
        sprint.add_dev_task(_feature(project, 50))
        assert sprint.remaining_dev_effort() == 0
        with pytest.raises(SprintCapacityError, match="exceeds remaining effort"):
            sprint.add_dev_task(_feature(project, 1))

    def test_rejects_none(self, project):
        sprint = project.new_sprint()
        with pytest.raises(SprintError, match="cannot be null"):
            sprint.add_dev_task(None)

    def test_rejects_duplicate(self, project):
        sprint = project.new_sprint()
        feature = _feature(project, 3)
        sprint.add_dev_task(feature)
        with pytest.raises(SprintError, match="already in the sprint"):
            sprint.add_dev_task(feature)

    def test_capacity_error_is_sprint_error(self):
        assert issubclass(SprintCapacityError, SprintError)

    def test_task_lists_are_copies(self, project):
        sprint = project.new_sprint()
        sprint.dev_tasks.append(_feature(project, 3))
        assert sprint.dev_tasks == []


class TestFillDevSprint:
    """Tests for greedy smallest-first scheduling."""

    def test_smallest_first_and_skip_oversized(self, project):
        sizes = (30, 20, 10, 25)
        features = {size: _feature(project, size) for size in sizes}
        sprint = project.new_sprint()
        scheduled = sprint.fill_dev_sprint()
        assert scheduled == [features[10], features[20]]
        assert sprint.remaining_dev_effort() == 20

    def test_skips_done_items_and_test_tasks(self, project, done_feature):
        _test_task(project, 2, [done_feature])
        open_feature = _feature(project, 5)
        defect = Defect(project.get_next_id(), "D", project, size=2, cause_task=done_feature)
        project.add_defect(defect)
        project.defect_found(defect)

        scheduled = project.new_sprint().fill_dev_sprint()
        assert scheduled == [defect, open_feature]

    def test_empty_backlog(self, project):
        assert project.new_sprint().fill_dev_sprint() == []

    def test_cannot_fill_completed_sprint(self, project):
        sprint = project.new_sprint()
        sprint.done()
        with pytest.raises(SprintError):
            sprint.fill_dev_sprint()


class TestSprintDone:
    """Tests for sprint execution."""

    def test_completes_dev_tasks(self, project):
        feature = _feature(project, 4)
        sprint = project.new_sprint()
        sprint.fill_dev_sprint()
        sprint.done()
        assert sprint.is_done()
        assert feature.is_done()
        # Completing a feature always creates at least one direct defect
        assert feature.caused_defects()

    def test_runs_test_tasks_after_dev_tasks(self, project, done_feature):
        task = _test_task(project, 4, [done_feature])
        sprint = project.new_sprint()
        sprint.add_test_task(task)
        sprint.done()
        assert task.is_done()
        # Half of the exploratory effort goes to knowledge
        assert done_feature.knowledge == pytest.approx(2 / 4)

    def test_done_twice(self, project):
        sprint = project.new_sprint()
        sprint.done()
        with pytest.raises(SprintError, match="already completed"):
            sprint.done()

    def test_cannot_add_to_completed_sprint(self, project):
        sprint = project.new_sprint()
        sprint.done()
        with pytest.raises(SprintError, match="completed sprint"):
            sprint.add_dev_task(_feature(project, 1))
