"""Tests for the scripted testing strategies."""

import pytest

from sprintsim.models import DefectCategory, Feature, StrategyName, TaskStatus, TestTaskKind
from sprintsim.simulation import (
    STRATEGIES,
    Project,
    ProjectError,
    get_strategy,
    strategy_cycle,
    strategy_dumbcycle,
    strategy_focused,
    strategy_risk,
)


@pytest.fixture
def strategy_project(rng) -> Project:
    """Project with test effort 5 and three done features with distinct top risks."""
    project = Project(1, "Strategies", dev_effort=10, test_effort=5, rng=rng)
    for name, top in (("A", "security"), ("B", "performance"), ("C", "usability")):
        feature = Feature(
            project.get_next_id(),
            name,
            project,
            size=3,
            complexity=2,
            status=TaskStatus.DONE,
            risks={top: 0.9},
        )
        project.add_to_backlog(feature)
    return project


def _advance_to(project: Project, ordinal: int):
    while len(project.sprints) < ordinal:
        project.new_sprint()
    return project.require_current_sprint()


def _schedule_dev_work(project: Project, sprint) -> None:
    feature = Feature(project.get_next_id(), "Open", project, size=2)
    project.add_to_backlog(feature)
    sprint.add_dev_task(feature)


class TestCommonBehaviour:
    """Behaviour shared by every strategy."""

    @pytest.mark.parametrize("name", list(StrategyName))
    def test_nothing_without_done_features(self, rng, name):
        project = Project(1, "Empty", dev_effort=10, test_effort=5, rng=rng)
        project.add_to_backlog(Feature(1, "Open", project))
        _advance_to(project, 4)
        assert get_strategy(name)(project) == []

    @pytest.mark.parametrize("name", list(StrategyName))
    @pytest.mark.parametrize("ordinal", [1, 2, 3, 4, 5, 6, 7])
    def test_tasks_persisted_and_within_capacity(self, strategy_project, name, ordinal):
        sprint = _advance_to(strategy_project, ordinal)
        tasks = get_strategy(name)(strategy_project)

        assert tasks
        assert sprint.test_tasks == tasks
        assert all(task in strategy_project.backlog for task in tasks)
        assert sum(task.size for task in tasks) <= strategy_project.test_effort + 1e-9
        ids = [task.id for task in strategy_project.backlog]
        assert len(set(ids)) == len(ids)

    def test_requires_sprint(self, strategy_project):
        with pytest.raises(ProjectError, match="No active sprint"):
            strategy_cycle(strategy_project)

    def test_registry(self):
        assert set(STRATEGIES) == set(StrategyName)
        assert get_strategy("risk") is strategy_risk

    def test_unknown_strategy(self):
        with pytest.raises(KeyError):
            get_strategy("random")


class TestDumbCycle:
    """Tests for the dumbcycle strategy."""

    def test_first_sprint_gathers_knowledge(self, strategy_project):
        _advance_to(strategy_project, 1)
        (task,) = strategy_dumbcycle(strategy_project)
        assert task.test_kind is TestTaskKind.GATHER_KNOWLEDGE
        assert task.size == 5
        assert len(task.features) == 3

    def test_first_test_sprint_gathers_knowledge_late(self, strategy_project):
        """The driver first asks in sprint 2; knowledge still comes first."""
        _advance_to(strategy_project, 2)
        (task,) = strategy_dumbcycle(strategy_project)
        assert task.test_kind is TestTaskKind.GATHER_KNOWLEDGE

        sprint = _advance_to(strategy_project, 3)
        (task,) = strategy_dumbcycle(strategy_project)
        assert task.test_kind is TestTaskKind.SECURITY
        assert task in sprint.test_tasks

    @pytest.mark.parametrize(
        "ordinal,kind",
        [
            (2, TestTaskKind.PERFORMANCE),
            (3, TestTaskKind.SECURITY),
            (4, TestTaskKind.FUNCTIONALITY),
            (5, TestTaskKind.USABILITY),
        ],
    )
    def test_cycles_categories(self, strategy_project, ordinal, kind):
        earlier = strategy_project.create_test_task(
            TestTaskKind.GATHER_KNOWLEDGE, features=strategy_project.done_features()
        )
        strategy_project.add_to_backlog(earlier)
        sprint = _advance_to(strategy_project, ordinal)
        _schedule_dev_work(strategy_project, sprint)
        (task,) = strategy_dumbcycle(strategy_project)
        assert task.test_kind is kind
        assert task.size == 5


class TestCycle:
    """Tests for the cycle strategy."""

    def test_gathers_knowledge_while_dev_work_remains(self, strategy_project):
        sprint = _advance_to(strategy_project, 3)
        _schedule_dev_work(strategy_project, sprint)
        (task,) = strategy_cycle(strategy_project)
        assert task.test_kind is TestTaskKind.GATHER_KNOWLEDGE

    def test_category_pass_once_dev_work_is_done(self, strategy_project):
        _advance_to(strategy_project, 3)
        (task,) = strategy_cycle(strategy_project)
        assert task.test_kind is TestTaskKind.SECURITY
        assert task.features == strategy_project.done_features()


class TestRisk:
    """Tests for the risk strategy."""

    def test_second_sprint_splits_knowledge_and_risk(self, strategy_project):
        _advance_to(strategy_project, 2)
        knowledge, risk = strategy_risk(strategy_project)
        assert knowledge.test_kind is TestTaskKind.GATHER_KNOWLEDGE
        assert knowledge.size == 4
        assert risk.test_kind is TestTaskKind.RISK_ASSESSMENT
        assert risk.size == 1

    def test_gathers_knowledge_while_dev_work_remains(self, strategy_project):
        sprint = _advance_to(strategy_project, 4)
        _schedule_dev_work(strategy_project, sprint)
        (task,) = strategy_risk(strategy_project)
        assert task.test_kind is TestTaskKind.GATHER_KNOWLEDGE

    def test_top_risk_per_feature_and_sweep(self, strategy_project):
        _advance_to(strategy_project, 3)
        tasks = strategy_risk(strategy_project)

        *per_feature, sweep = tasks
        assert [t.name for t in per_feature] == ["Test Task 1", "Test Task 2", "Test Task 3"]
        assert [t.test_kind for t in per_feature] == [
            TestTaskKind.SECURITY,
            TestTaskKind.PERFORMANCE,
            TestTaskKind.USABILITY,
        ]
        assert all(len(t.features) == 1 for t in per_feature)
        assert sweep.test_kind is TestTaskKind.EXPLORATORY
        assert sweep.size == pytest.approx(1.0)
        assert sum(t.size for t in tasks) == pytest.approx(5.0)


class TestFocused:
    """Tests for the focused strategy."""

    def test_warm_up_matches_risk(self, strategy_project):
        _advance_to(strategy_project, 1)
        (task,) = strategy_focused(strategy_project)
        assert task.test_kind is TestTaskKind.GATHER_KNOWLEDGE

    @pytest.mark.parametrize(
        "ordinal,feature_index",
        [(3, 0), (4, 1), (6, 2), (7, 0)],
    )
    def test_focus_rotation(self, strategy_project, ordinal, feature_index):
        _advance_to(strategy_project, ordinal)
        features = strategy_project.done_features()
        (task,) = strategy_focused(strategy_project)
        focus = features[feature_index]
        assert task.features == [focus]
        assert task.test_kind.category is focus.top_risk()
        assert task.size == 5

    def test_every_third_sprint_is_a_category_pass(self, strategy_project):
        _advance_to(strategy_project, 5)
        (task,) = strategy_focused(strategy_project)
        assert task.test_kind.category is DefectCategory.USABILITY
        assert len(task.features) == 3
