"""
Sprint: a capacity-bounded container of dev and test tasks.

Capacity is enforced on insertion. At every point the dev tasks sum to at
most `project.dev_effort` and the test tasks to at most `project.test_effort`;
a rejected insertion leaves the sprint unchanged.
"""

import logging
from typing import TYPE_CHECKING

from sprintsim.models.base import TaskKind, TaskStatus
from sprintsim.models.tasks import Task
from sprintsim.simulation.lifecycle import complete_task

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project

logger = logging.getLogger(__name__)

# Task kinds that consume dev capacity
DEV_TASK_KINDS = (TaskKind.FEATURE, TaskKind.DEFECT)


class SprintError(RuntimeError):
    """Raised on an invalid sprint mutation."""


class SprintCapacityError(SprintError):
    """Raised when a task does not fit in the remaining sprint capacity."""


class Sprint:
    """One iteration of the project.

    Attributes:
        id: Ordinal of the sprint within its project (1-based)
        project: Owning project
        status: new until `done()` is called
    """

    def __init__(self, id: int, project: "Project") -> None:
        self._id = id
        self._project = project
        self._status = TaskStatus.NEW
        self._dev_tasks: list[Task] = []
        self._test_tasks: list[Task] = []

    def __repr__(self) -> str:
        return (
            f"Sprint(id={self._id}, status={self._status.value}, "
            f"dev={len(self._dev_tasks)}, test={len(self._test_tasks)})"
        )

    @property
    def id(self) -> int:
        return self._id

    @property
    def project(self) -> "Project":
        return self._project

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def dev_tasks(self) -> list[Task]:
        return list(self._dev_tasks)

    @property
    def test_tasks(self) -> list[Task]:
        return list(self._test_tasks)

    def is_done(self) -> bool:
        return self._status == TaskStatus.DONE

    def remaining_dev_effort(self) -> float:
        return self._project.dev_effort - sum(task.size for task in self._dev_tasks)

    def remaining_test_effort(self) -> float:
        return self._project.test_effort - sum(task.size for task in self._test_tasks)

    def add_dev_task(self, task: Task | None) -> bool:
        """Schedule dev work.

        Raises:
            SprintError: On a missing or duplicate task or a finished sprint
            SprintCapacityError: If the task exceeds the remaining dev effort
        """
        self._check_insert(task, self._dev_tasks)
        if task.size > self.remaining_dev_effort():
            raise SprintCapacityError("Sprint: task size exceeds remaining effort")
        self._dev_tasks.append(task)
        return True

    def add_test_task(self, task: Task | None) -> bool:
        """Schedule test work.

        Raises:
            SprintError: On a missing or duplicate task or a finished sprint
            SprintCapacityError: If the task exceeds the remaining test effort
        """
        self._check_insert(task, self._test_tasks)
        if task.size > self.remaining_test_effort():
            raise SprintCapacityError("Sprint: task size exceeds remaining effort")
        self._test_tasks.append(task)
        return True

    def _check_insert(self, task: Task | None, tasks: list[Task]) -> None:
        if task is None:
            raise SprintError("Sprint: task cannot be null")
        if self.is_done():
            raise SprintError("Sprint: cannot add tasks to a completed sprint")
        if any(t.id == task.id for t in tasks):
            raise SprintError("Sprint: task is already in the sprint")

    def fill_dev_sprint(self) -> list[Task]:
        """Greedily pack open backlog work, smallest first.

        Only features and defects are candidates; tasks that do not fit in
        the remaining dev effort are skipped.

        Returns:
            The sprint's dev tasks after filling
        """
        if self.is_done():
            raise SprintError("Sprint: cannot fill a completed sprint")

        scheduled = {task.id for task in self._dev_tasks}
        candidates = [
            task
            for task in self._project.backlog
            if task.kind in DEV_TASK_KINDS and not task.is_done() and task.id not in scheduled
        ]
        for task in sorted(candidates, key=lambda t: t.size):
            if task.size <= self.remaining_dev_effort():
                self.add_dev_task(task)

        logger.debug(
            "Sprint %d filled with %d dev tasks (%.1f effort left)",
            self._id,
            len(self._dev_tasks),
            self.remaining_dev_effort(),
        )
        return self.dev_tasks

    def done(self) -> list[Task]:
        """Execute the sprint: complete dev tasks, then test tasks.

        Already completed tasks are skipped.

        Raises:
            SprintError: If the sprint was already executed
        """
        if self.is_done():
            raise SprintError("Sprint: sprint is already completed")

        for task in self._dev_tasks + self._test_tasks:
            if not task.is_done():
                complete_task(self._project, task)

        self._status = TaskStatus.DONE
        return self.dev_tasks
