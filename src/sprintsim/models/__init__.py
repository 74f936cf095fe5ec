"""
sprintsim - Entity Model

Task records shared by the simulation engine, the strategies and any
presentation layer: features, defects and test tasks, plus the enumerations
describing their categorical fields.
"""

from sprintsim.models.base import (
    DEFECT_CATEGORIES,
    DefectCategory,
    StrategyName,
    TaskKind,
    TaskStatus,
    TestTaskKind,
)
from sprintsim.models.tasks import (
    Defect,
    Feature,
    Task,
    TaskValueError,
    TestTask,
)

__all__ = [
    # Enums
    "DEFECT_CATEGORIES",
    "DefectCategory",
    "StrategyName",
    "TaskKind",
    "TaskStatus",
    "TestTaskKind",
    # Entities
    "Task",
    "Feature",
    "Defect",
    "TestTask",
    "TaskValueError",
]
