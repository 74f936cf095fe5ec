"""
Base enumerations used throughout the entity model.

These enums provide type-safe values for the categorical fields of tasks,
defects, test tasks and strategies.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Lifecycle status of any task."""

    NEW = "new"
    DONE = "done"


class TaskKind(str, Enum):
    """Discriminant for the task variants."""

    FEATURE = "feature"
    DEFECT = "defect"
    TEST_TASK = "test_task"


class DefectCategory(str, Enum):
    """Category of a defect.

    Declaration order is the canonical order used for weighted draws,
    tie-breaking and category cycling.
    """

    FUNCTIONALITY = "functionality"
    USABILITY = "usability"
    PERFORMANCE = "performance"
    SECURITY = "security"


class TestTaskKind(str, Enum):
    """The seven test task variants."""

    __test__ = False  # not a pytest test class

    GATHER_KNOWLEDGE = "gather_knowledge"
    EXPLORATORY = "exploratory"
    FUNCTIONALITY = "functionality"
    PERFORMANCE = "performance"
    SECURITY = "security"
    USABILITY = "usability"
    RISK_ASSESSMENT = "risk_assessment"

    @classmethod
    def parse(cls, value: "str | TestTaskKind | DefectCategory") -> "TestTaskKind":
        """Resolve a kind from its value, a defect category or an alias.

        Accepts the hyphenated spellings ("gather-knowledge",
        "risk-assessment") and "functional".

        Raises:
            ValueError: If the value names no known kind
        """
        if isinstance(value, TestTaskKind):
            return value
        if isinstance(value, DefectCategory):
            return cls(value.value)
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "functional":
            normalized = "functionality"
        return cls(normalized)

    @property
    def category(self) -> DefectCategory | None:
        """Defect category this kind detects, if it is a single-category test."""
        try:
            return DefectCategory(self.value)
        except ValueError:
            return None


class StrategyName(str, Enum):
    """Names of the scripted testing strategies."""

    FOCUSED = "focused"
    RISK = "risk"
    CYCLE = "cycle"
    DUMBCYCLE = "dumbcycle"


# Categories in canonical order
DEFECT_CATEGORIES: tuple[DefectCategory, ...] = tuple(DefectCategory)
