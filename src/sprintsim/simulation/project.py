"""
Project aggregate.

A project owns the backlog (features, surfaced defects and test tasks), the
full defect ledger (including defects nobody has found yet), the ordered list
of sprints and the sizing/risk parameters used by generation and testing.

Identifiers are derived from persisted state: `get_next_id()` is always
`max(backlog ids, ledger ids) + 1`, so callers must persist an item before
asking for the next id.
"""

import logging
import math
import random
from collections.abc import Iterable
from dataclasses import dataclass

from sprintsim.config.models import ProjectConfig
from sprintsim.models.base import TaskKind, TestTaskKind
from sprintsim.models.tasks import Defect, Feature, Task, TestTask
from sprintsim.simulation.sprint import Sprint

logger = logging.getLogger(__name__)

# Percentage of unfixed defects at or below which a finished project is won
WIN_THRESHOLD_PERCENT = 10


class ProjectError(ValueError):
    """Raised on invalid project state or parameter values."""


@dataclass(frozen=True)
class GameEndResult:
    """Outcome of the game-end check after a sprint.

    Attributes:
        is_game_over: Whether the run has ended
        is_won: Win flag (None while the game is running)
        percent_not_done: Rounded share of ledger defects left unfixed
        message: Human readable verdict
    """

    is_game_over: bool
    is_won: bool | None = None
    percent_not_done: int | None = None
    message: str | None = None

    @classmethod
    def running(cls) -> "GameEndResult":
        return cls(is_game_over=False)

    @classmethod
    def aborted(cls, sprint_count: int) -> "GameEndResult":
        """Run stopped by the sprint cap; counted as a loss."""
        return cls(
            is_game_over=True,
            is_won=False,
            percent_not_done=None,
            message=f"You lost! Project did not finish within {sprint_count} sprints.",
        )


class Project:
    """A simulated software project.

    Attributes:
        id: Positive identifier
        name: Non-empty name
        dev_effort: Dev capacity per sprint
        test_effort: Test capacity per sprint
        backlog: Features, surfaced defects and test tasks
        defects: Full defect ledger
        sprints: Sprints in creation order
        rng: Random source for every stochastic decision in this project
    """

    def __init__(
        self,
        id: int,
        name: str,
        dev_effort: float = 0,
        test_effort: float = 0,
        backlog: Iterable[Task] | None = None,
        defects: Iterable[Defect] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._id = 0
        self._name = ""
        self._dev_effort = 0.0
        self._test_effort = 0.0
        self.id = id
        self.name = name
        self.dev_effort = dev_effort
        self.test_effort = test_effort

        self._backlog: list[Task] = list(backlog or [])
        self._defects: list[Defect] = list(defects or [])
        self._sprints: list[Sprint] = []
        self._links: dict[int, dict[int, Task]] = {}
        self.rng = rng if rng is not None else random.Random()

        # Generation and detection parameters
        self._regression_risk = 0.2
        self._min_feature_size: float = 1
        self._max_feature_size: float = 7
        self._min_feature_complexity: float = 1
        self._max_feature_complexity: float = 7
        self._feature_count = 5
        self._max_stealth = 1.0
        self._test_effort_coefficient = 1.0
        self._test_type_coefficient = 1.0
        self._test_knowledge_coefficient = 1.0
        self._max_sprints = 200

    def __repr__(self) -> str:
        return (
            f"Project(id={self._id}, name={self._name!r}, "
            f"backlog={len(self._backlog)}, defects={len(self._defects)}, "
            f"sprints={len(self._sprints)})"
        )

    # Identity and capacity

    @property
    def id(self) -> int:
        return self._id

    @id.setter
    def id(self, value: int) -> None:
        if value <= 0:
            raise ProjectError("Project id must be positive.")
        self._id = value

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if not value or not value.strip():
            raise ProjectError("Project name must be non-empty.")
        self._name = value.strip()

    @property
    def dev_effort(self) -> float:
        return self._dev_effort

    @dev_effort.setter
    def dev_effort(self, value: float) -> None:
        if value < 0:
            raise ProjectError("dev_effort must be non-negative.")
        self._dev_effort = value

    @property
    def test_effort(self) -> float:
        return self._test_effort

    @test_effort.setter
    def test_effort(self, value: float) -> None:
        if value < 0:
            raise ProjectError("test_effort must be non-negative.")
        self._test_effort = value

    # Generation and detection parameters

    @property
    def regression_risk(self) -> float:
        return self._regression_risk

    @regression_risk.setter
    def regression_risk(self, value: float) -> None:
        if not 0 <= value <= 1:
            raise ProjectError("regression_risk must be between 0 and 1.")
        self._regression_risk = value

    @property
    def min_feature_size(self) -> float:
        return self._min_feature_size

    @min_feature_size.setter
    def min_feature_size(self, value: float) -> None:
        self._min_feature_size = _positive("min_feature_size", value)

    @property
    def max_feature_size(self) -> float:
        return self._max_feature_size

    @max_feature_size.setter
    def max_feature_size(self, value: float) -> None:
        self._max_feature_size = _positive("max_feature_size", value)

    @property
    def min_feature_complexity(self) -> float:
        return self._min_feature_complexity

    @min_feature_complexity.setter
    def min_feature_complexity(self, value: float) -> None:
        self._min_feature_complexity = _positive("min_feature_complexity", value)

    @property
    def max_feature_complexity(self) -> float:
        return self._max_feature_complexity

    @max_feature_complexity.setter
    def max_feature_complexity(self, value: float) -> None:
        self._max_feature_complexity = _positive("max_feature_complexity", value)

    @property
    def feature_count(self) -> float:
        return self._feature_count

    @feature_count.setter
    def feature_count(self, value: float) -> None:
        self._feature_count = _positive("feature_count", value)

    @property
    def max_stealth(self) -> float:
        return self._max_stealth

    @max_stealth.setter
    def max_stealth(self, value: float) -> None:
        self._max_stealth = _positive("max_stealth", value)

    @property
    def test_effort_coefficient(self) -> float:
        return self._test_effort_coefficient

    @test_effort_coefficient.setter
    def test_effort_coefficient(self, value: float) -> None:
        self._test_effort_coefficient = _positive("test_effort_coefficient", value)

    @property
    def test_type_coefficient(self) -> float:
        return self._test_type_coefficient

    @test_type_coefficient.setter
    def test_type_coefficient(self, value: float) -> None:
        self._test_type_coefficient = _positive("test_type_coefficient", value)

    @property
    def test_knowledge_coefficient(self) -> float:
        return self._test_knowledge_coefficient

    @test_knowledge_coefficient.setter
    def test_knowledge_coefficient(self, value: float) -> None:
        self._test_knowledge_coefficient = _positive("test_knowledge_coefficient", value)

    @property
    def max_sprints(self) -> int:
        return self._max_sprints

    @max_sprints.setter
    def max_sprints(self, value: int) -> None:
        self._max_sprints = _positive("max_sprints", value)

    def apply_config(self, config: ProjectConfig) -> None:
        """Copy every parameter of `config` onto the project."""
        self.dev_effort = config.dev_effort
        self.test_effort = config.test_effort
        self.regression_risk = config.regression_risk
        self.min_feature_size = config.min_feature_size
        self.max_feature_size = config.max_feature_size
        self.min_feature_complexity = config.min_feature_complexity
        self.max_feature_complexity = config.max_feature_complexity
        self.feature_count = config.feature_count
        self.max_stealth = config.max_stealth
        self.test_effort_coefficient = config.test_effort_coefficient
        self.test_type_coefficient = config.test_type_coefficient
        self.test_knowledge_coefficient = config.test_knowledge_coefficient
        self.max_sprints = config.max_sprints

    # Collections

    @property
    def backlog(self) -> list[Task]:
        return self._backlog

    @property
    def defects(self) -> list[Defect]:
        return self._defects

    @property
    def sprints(self) -> list[Sprint]:
        return list(self._sprints)

    def add_to_backlog(self, item: Task) -> None:
        self._backlog.append(item)

    def remove_from_backlog(self, item_id: int) -> bool:
        for index, item in enumerate(self._backlog):
            if item.id == item_id:
                del self._backlog[index]
                return True
        return False

    def add_defect(self, defect: Defect) -> None:
        self._defects.append(defect)

    def remove_defect(self, defect_id: int) -> bool:
        for index, defect in enumerate(self._defects):
            if defect.id == defect_id:
                del self._defects[index]
                return True
        return False

    def get_task_by_id(self, task_id: int) -> Task | None:
        """Look a task up in the backlog first, then in the defect ledger."""
        for task in self._backlog:
            if task.id == task_id:
                return task
        for defect in self._defects:
            if defect.id == task_id:
                return defect
        return None

    def get_max_id(self) -> int:
        ids = [task.id for task in self._backlog] + [defect.id for defect in self._defects]
        return max(ids, default=0)

    def get_next_id(self) -> int:
        """Next identifier, derived from persisted tasks only.

        Repeated calls return the same value until something is added.
        """
        return self.get_max_id() + 1

    def done_features(self) -> list[Feature]:
        return [t for t in self._backlog if t.kind is TaskKind.FEATURE and t.is_done()]

    def open_features(self) -> list[Feature]:
        return [t for t in self._backlog if t.kind is TaskKind.FEATURE and not t.is_done()]

    def defect_found(self, defect: Defect) -> None:
        """Surface a defect: flag it found and make it schedulable."""
        defect.is_found = True
        self.add_to_backlog(defect)
        logger.debug("Defect %d (%s) found in project %d", defect.id, defect.category.value, self._id)

    # Linked-task index

    def link_tasks(self, a: Task, b: Task) -> None:
        """Link two tasks symmetrically. Self-links are ignored."""
        if a is b or a.id == b.id:
            return
        self._links.setdefault(a.id, {})[b.id] = b
        self._links.setdefault(b.id, {})[a.id] = a

    def unlink_tasks(self, a: Task, b: Task) -> bool:
        existed = b.id in self._links.get(a.id, {})
        self._links.get(a.id, {}).pop(b.id, None)
        self._links.get(b.id, {}).pop(a.id, None)
        return existed

    def linked_tasks_of(self, task: Task) -> list[Task]:
        return list(self._links.get(task.id, {}).values())

    # Sprints

    def new_sprint(self) -> Sprint:
        sprint = Sprint(len(self._sprints) + 1, self)
        self._sprints.append(sprint)
        return sprint

    @property
    def current_sprint(self) -> Sprint | None:
        return self._sprints[-1] if self._sprints else None

    def require_current_sprint(self) -> Sprint:
        """Return the current sprint.

        Raises:
            ProjectError: If no sprint has been created yet
        """
        sprint = self.current_sprint
        if sprint is None:
            raise ProjectError("No active sprint found in the project")
        return sprint

    def create_test_task(
        self,
        kind: TestTaskKind | str,
        name: str | None = None,
        features: Iterable[Feature] = (),
        size: float = 1,
    ) -> TestTask:
        """Build a test task with the next free id. The task is not persisted.

        Raises:
            ProjectError: If `kind` names no known test task type
        """
        try:
            test_kind = TestTaskKind.parse(kind)
        except ValueError as e:
            raise ProjectError(f"Unknown test task type: {kind}") from e
        if not name or not name.strip():
            name = test_kind.value.replace("_", " ").capitalize()
        return TestTask(self.get_next_id(), name, self, test_kind, features, size=size)

    def evaluate_game_end(self, current_sprint: Sprint, new_sprint: Sprint) -> GameEndResult:
        """Decide whether the run is over and, if so, whether it was won.

        The game is over once no open feature remains in the backlog and both
        the sprint just executed and the freshly filled one are free of dev
        work. It is won when at most 10% of ledger defects remain unfixed.
        """
        if self.open_features() or current_sprint.dev_tasks or new_sprint.dev_tasks:
            return GameEndResult.running()

        if not self._defects:
            percent_not_done = 0
        else:
            not_done = sum(1 for d in self._defects if not d.is_done())
            # half-up, not banker's rounding
            percent_not_done = math.floor(100 * not_done / len(self._defects) + 0.5)

        is_won = percent_not_done <= WIN_THRESHOLD_PERCENT
        verdict = "You won!" if is_won else "You lost!"
        return GameEndResult(
            is_game_over=True,
            is_won=is_won,
            percent_not_done=percent_not_done,
            message=f"{verdict} {percent_not_done}% of defects were not fixed.",
        )


def _positive(name: str, value):
    if value <= 0:
        raise ProjectError(f"{name} must be positive.")
    return value
