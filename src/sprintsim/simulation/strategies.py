"""
Testing strategies.

A strategy is invoked once per sprint, after the sprint has been filled with
dev work, and decides which test tasks to schedule in it. Strategies depend
only on the sprint ordinal (`len(project.sprints)`) and the backlog state.
The driver first calls a strategy in sprint 2, once sprint 1 has completed
some features.

Every created test task gets the next free id, is appended to the backlog and
then added to the current sprint. Sizes are clamped to the remaining test
capacity; nothing is scheduled while no feature is done.
"""

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from sprintsim.models.base import (
    DEFECT_CATEGORIES,
    DefectCategory,
    StrategyName,
    TaskKind,
    TestTaskKind,
)
from sprintsim.models.tasks import Feature, TestTask

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project
    from sprintsim.simulation.sprint import Sprint

logger = logging.getLogger(__name__)

Strategy = Callable[["Project"], list[TestTask]]

# Share of test effort the risk strategy keeps for an exploratory sweep
RISK_RESIDUAL_SHARE = 0.2
# Test effort spent on risk assessment in the second sprint
RISK_ASSESSMENT_EFFORT = 1.0


def _schedule(
    project: "Project",
    sprint: "Sprint",
    kind: TestTaskKind | DefectCategory,
    features: Sequence[Feature],
    size: float,
    name: str | None = None,
) -> TestTask | None:
    size = min(size, sprint.remaining_test_effort())
    if size <= 0 or not features:
        return None
    task = project.create_test_task(TestTaskKind.parse(kind), name, features, size)
    project.add_to_backlog(task)
    sprint.add_test_task(task)
    return task


def _cycle_category(sprint: "Sprint") -> DefectCategory:
    return DEFECT_CATEGORIES[sprint.id % len(DEFECT_CATEGORIES)]


def _category_pass(project: "Project", sprint: "Sprint", features: list[Feature]) -> list[TestTask]:
    task = _schedule(project, sprint, _cycle_category(sprint), features, project.test_effort)
    return [task] if task else []


def _gather_knowledge(project: "Project", sprint: "Sprint", features: list[Feature]) -> list[TestTask]:
    task = _schedule(project, sprint, TestTaskKind.GATHER_KNOWLEDGE, features, project.test_effort)
    return [task] if task else []


def _knowledge_and_risk(project: "Project", sprint: "Sprint", features: list[Feature]) -> list[TestTask]:
    """Second-sprint split: most effort on knowledge, the rest on risk assessment."""
    knowledge_effort = project.test_effort - RISK_ASSESSMENT_EFFORT
    if knowledge_effort <= 0:
        return _gather_knowledge(project, sprint, features)

    created = []
    for kind, size in (
        (TestTaskKind.GATHER_KNOWLEDGE, knowledge_effort),
        (TestTaskKind.RISK_ASSESSMENT, RISK_ASSESSMENT_EFFORT),
    ):
        task = _schedule(project, sprint, kind, features, size)
        if task:
            created.append(task)
    return created


def _warm_up(project: "Project", sprint: "Sprint", features: list[Feature]) -> list[TestTask] | None:
    """Sprints shared by the risk-driven strategies; None once past them."""
    ordinal = len(project.sprints)
    if ordinal == 1:
        return _gather_knowledge(project, sprint, features)
    if ordinal == 2:
        return _knowledge_and_risk(project, sprint, features)
    return None


def _has_tested(project: "Project") -> bool:
    return any(task.kind is TaskKind.TEST_TASK for task in project.backlog)


def strategy_dumbcycle(project: "Project") -> list[TestTask]:
    """Knowledge first, then one category per sprint regardless of state.

    The knowledge sprint is the first one that schedules any test task.
    """
    sprint = project.require_current_sprint()
    features = project.done_features()
    if not features:
        return []
    if not _has_tested(project):
        return _gather_knowledge(project, sprint, features)
    return _category_pass(project, sprint, features)


def strategy_cycle(project: "Project") -> list[TestTask]:
    """Gather knowledge while dev work remains, then cycle categories."""
    sprint = project.require_current_sprint()
    features = project.done_features()
    if not features:
        return []
    if sprint.dev_tasks:
        return _gather_knowledge(project, sprint, features)
    return _category_pass(project, sprint, features)


def strategy_risk(project: "Project") -> list[TestTask]:
    """Knowledge and risk assessment, then each feature's top risk.

    Once dev work is finished, a residual share of the effort goes to one
    exploratory sweep over all done features and the rest is split evenly
    into one top-risk test per feature.
    """
    sprint = project.require_current_sprint()
    features = project.done_features()
    if not features:
        return []

    warm_up = _warm_up(project, sprint, features)
    if warm_up is not None:
        return warm_up
    if sprint.dev_tasks:
        return _gather_knowledge(project, sprint, features)

    residual = project.test_effort * RISK_RESIDUAL_SHARE
    per_feature = (project.test_effort - residual) / len(features)

    created = []
    for index, feature in enumerate(features, start=1):
        task = _schedule(
            project, sprint, feature.top_risk(), [feature], per_feature, name=f"Test Task {index}"
        )
        if task:
            created.append(task)

    sweep = _schedule(project, sprint, TestTaskKind.EXPLORATORY, features, residual)
    if sweep:
        created.append(sweep)
    return created


def strategy_focused(project: "Project") -> list[TestTask]:
    """Rotate a full-effort focus over single features, with regression passes.

    After the shared warm-up sprints, the pattern repeats every three
    sprints: two focus sprints, each testing the top risk of the next
    feature in rotation, then one category pass over all done features.
    """
    sprint = project.require_current_sprint()
    features = project.done_features()
    if not features:
        return []

    warm_up = _warm_up(project, sprint, features)
    if warm_up is not None:
        return warm_up

    offset = len(project.sprints) - 3
    phase = offset % 3
    if phase == 2:
        return _category_pass(project, sprint, features)

    focus_index = ((offset // 3) * 2 + phase) % len(features)
    feature = features[focus_index]
    task = _schedule(project, sprint, feature.top_risk(), [feature], project.test_effort)
    return [task] if task else []


STRATEGIES: dict[StrategyName, Strategy] = {
    StrategyName.FOCUSED: strategy_focused,
    StrategyName.RISK: strategy_risk,
    StrategyName.CYCLE: strategy_cycle,
    StrategyName.DUMBCYCLE: strategy_dumbcycle,
}


def get_strategy(name: StrategyName | str) -> Strategy:
    """Look a strategy up by name.

    Raises:
        KeyError: If no strategy has that name
    """
    try:
        return STRATEGIES[StrategyName(name)]
    except ValueError as e:
        raise KeyError(f"Unknown strategy: {name}") from e
