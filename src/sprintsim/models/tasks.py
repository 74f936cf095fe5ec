"""
Task entities: features, defects and test tasks.

All variants share the Task record (identity, name, size, complexity, status,
owning project). The `kind` discriminant replaces type dispatch; behaviour
that differs per variant on completion lives in
`sprintsim.simulation.lifecycle`.

Two validation tiers are used on purpose:
- Soft setters (id, name, size, complexity, severity) silently ignore
  out-of-range values and keep the previous state.
- Hard setters (knowledge, risk_knowledge, stealth, risks) raise
  TaskValueError.
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from sprintsim.models.base import (
    DEFECT_CATEGORIES,
    DefectCategory,
    TaskKind,
    TaskStatus,
    TestTaskKind,
)

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project


class TaskValueError(ValueError):
    """Raised when a hard-validated task attribute receives an invalid value."""


class Task:
    """Base record shared by every task variant.

    Attributes:
        id: Positive identifier
        name: Non-empty display name
        size: Effort units needed to complete the task
        complexity: Drives the number and stealth of generated defects
        status: new or done
        project: Owning project
    """

    kind: TaskKind

    def __init__(
        self,
        id: int,
        name: str,
        project: "Project",
        size: float = 1,
        complexity: float = 1,
        status: TaskStatus = TaskStatus.NEW,
    ) -> None:
        self._id = id
        self._name = name
        self._size = size
        self._complexity = complexity
        self._status = TaskStatus(status)
        self._project = project

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id}, name={self._name!r}, status={self._status.value})"

    @property
    def id(self) -> int:
        return self._id

    @id.setter
    def id(self, value: int) -> None:
        if value > 0:
            self._id = value

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if value.strip():
            self._name = value.strip()

    @property
    def size(self) -> float:
        return self._size

    @size.setter
    def size(self, value: float) -> None:
        if value > 0:
            self._size = value

    @property
    def complexity(self) -> float:
        return self._complexity

    @complexity.setter
    def complexity(self, value: float) -> None:
        if value > 0:
            self._complexity = value

    @property
    def status(self) -> TaskStatus:
        return self._status

    @status.setter
    def status(self, value: TaskStatus) -> None:
        self._status = TaskStatus(value)

    @property
    def project(self) -> "Project":
        return self._project

    def mark_done(self) -> None:
        """Flip status to done. Variant side effects are not triggered here."""
        self._status = TaskStatus.DONE

    def is_done(self) -> bool:
        return self._status == TaskStatus.DONE

    # Linked tasks are kept in the project's adjacency index

    @property
    def linked_tasks(self) -> list["Task"]:
        return self._project.linked_tasks_of(self)

    def add_linked_task(self, task: "Task") -> None:
        """Link this task and `task` symmetrically. Self-links are ignored."""
        self._project.link_tasks(self, task)

    def remove_linked_task(self, task: "Task") -> bool:
        """Remove the link between this task and `task`.

        Returns:
            True if a link existed
        """
        return self._project.unlink_tasks(self, task)

    def open_risks(self) -> list[DefectCategory]:
        """Categories of linked defects that are not fixed yet, sorted and unique."""
        categories = {
            task.category
            for task in self.linked_tasks
            if isinstance(task, Defect) and not task.is_done()
        }
        return sorted(categories, key=lambda c: c.value)


def _default_risks() -> dict[DefectCategory, float]:
    return {category: 0.25 for category in DEFECT_CATEGORIES}


class Feature(Task):
    """A unit of product functionality.

    Attributes:
        knowledge: How well testers understand the feature (0..1)
        risk_knowledge: How well its risk profile is understood (0..1)
        risks: Relative likelihood weight for each defect category
    """

    kind = TaskKind.FEATURE

    def __init__(
        self,
        id: int,
        name: str,
        project: "Project",
        size: float = 1,
        complexity: float = 1,
        knowledge: float = 0.0,
        status: TaskStatus = TaskStatus.NEW,
        risks: Mapping[DefectCategory | str, float] | None = None,
        risk_knowledge: float = 0.0,
    ) -> None:
        super().__init__(id, name, project, size, complexity, status)
        self._knowledge = 0.0
        self._risk_knowledge = 0.0
        self._risks = _default_risks()
        self.knowledge = knowledge
        self.risk_knowledge = risk_knowledge
        if risks is not None:
            self.risks = risks

    @property
    def knowledge(self) -> float:
        return self._knowledge

    @knowledge.setter
    def knowledge(self, value: float) -> None:
        if value < 0 or value > 1:
            raise TaskValueError("Feature: invalid knowledge value")
        self._knowledge = value

    @property
    def risk_knowledge(self) -> float:
        return self._risk_knowledge

    @risk_knowledge.setter
    def risk_knowledge(self, value: float) -> None:
        if value < 0 or value > 1:
            raise TaskValueError("Feature: invalid risk knowledge value")
        self._risk_knowledge = value

    @property
    def risks(self) -> dict[DefectCategory, float]:
        return dict(self._risks)

    @risks.setter
    def risks(self, value: Mapping[DefectCategory | str, float]) -> None:
        risks = {category: 0.0 for category in DEFECT_CATEGORIES}
        for key, weight in value.items():
            if weight < 0:
                raise TaskValueError(f"Feature: negative risk weight for {key}")
            risks[DefectCategory(key)] = float(weight)
        self._risks = risks

    def top_risk(self) -> DefectCategory:
        """Category with the highest risk weight; ties go to the canonical order."""
        return max(DEFECT_CATEGORIES, key=lambda c: (self._risks[c], -DEFECT_CATEGORIES.index(c)))

    def defects(self) -> list["Defect"]:
        """Ledger defects that affect this feature (direct and regression)."""
        return [d for d in self.project.defects if d.affected_task.id == self.id]

    def found_defects(self) -> list["Defect"]:
        return [d for d in self.defects() if d.is_found]

    def caused_defects(self) -> list["Defect"]:
        """Ledger defects caused by completing this feature."""
        return [d for d in self.project.defects if d.cause_task.id == self.id]


class Defect(Task):
    """A defect caused by one task and affecting another.

    For direct defects the affected task is the cause itself; regression
    defects affect a different, already completed feature.

    Attributes:
        cause_task: Task whose completion introduced the defect
        affected_task: Feature the defect manifests in
        severity: 1..10
        category: Defect category
        stealth: Resistance to detection (0..1)
        is_found: Whether testing has surfaced the defect
    """

    kind = TaskKind.DEFECT

    def __init__(
        self,
        id: int,
        name: str,
        project: "Project",
        size: float = 1,
        complexity: float = 1,
        cause_task: Task | None = None,
        severity: int = 1,
        category: DefectCategory | str = DefectCategory.FUNCTIONALITY,
        stealth: float = 0.0,
        is_found: bool = False,
        status: TaskStatus = TaskStatus.NEW,
        affected_task: Task | None = None,
    ) -> None:
        super().__init__(id, name, project, size, complexity, status)
        if cause_task is None:
            raise TaskValueError("Defect: cause task is required")
        self._cause_task = cause_task
        self._affected_task = affected_task if affected_task is not None else cause_task
        self._severity = severity
        self._category = DefectCategory(category)
        self._stealth = 0.0
        self.stealth = stealth
        self._is_found = is_found

    @property
    def cause_task(self) -> Task:
        return self._cause_task

    @cause_task.setter
    def cause_task(self, value: Task) -> None:
        self._cause_task = value

    @property
    def affected_task(self) -> Task:
        return self._affected_task

    @affected_task.setter
    def affected_task(self, value: Task) -> None:
        self._affected_task = value

    @property
    def severity(self) -> int:
        return self._severity

    @severity.setter
    def severity(self, value: int) -> None:
        if 1 <= value <= 10:
            self._severity = value

    @property
    def category(self) -> DefectCategory:
        return self._category

    @category.setter
    def category(self, value: DefectCategory | str) -> None:
        self._category = DefectCategory(value)

    @property
    def stealth(self) -> float:
        return self._stealth

    @stealth.setter
    def stealth(self, value: float) -> None:
        if value < 0 or value > 1:
            raise TaskValueError("Defect: invalid stealth value")
        self._stealth = value

    @property
    def is_found(self) -> bool:
        return self._is_found

    @is_found.setter
    def is_found(self, value: bool) -> None:
        self._is_found = value

    @property
    def is_regression(self) -> bool:
        return self._cause_task.id != self._affected_task.id


class TestTask(Task):
    """Testing work targeting one or more features.

    The effort is the task size; on execution it is divided evenly
    across the target features.
    """

    kind = TaskKind.TEST_TASK
    __test__ = False  # not a pytest test class

    def __init__(
        self,
        id: int,
        name: str,
        project: "Project",
        test_kind: TestTaskKind | str,
        features: Iterable[Feature] = (),
        size: float = 1,
        complexity: float = 1,
        status: TaskStatus = TaskStatus.NEW,
    ) -> None:
        super().__init__(id, name, project, size, complexity, status)
        self._test_kind = TestTaskKind.parse(test_kind)
        self._features = list(features)

    @property
    def test_kind(self) -> TestTaskKind:
        return self._test_kind

    @property
    def features(self) -> list[Feature]:
        return list(self._features)

    @property
    def effort(self) -> float:
        return self.size

    def effort_per_feature(self) -> float:
        if not self._features:
            return 0.0
        return self.size / len(self._features)
