"""
Task completion side effects.

`complete_task` is the single place where finishing a task does more than
flip its status: features spawn defects, fixed defects may regress other
features, and test tasks run their testing behaviour.
"""

import logging
from typing import TYPE_CHECKING

from sprintsim.models.base import TaskKind
from sprintsim.models.tasks import Defect, Feature, Task, TestTask
from sprintsim.simulation.generation import generate_defects, generate_regression_defects
from sprintsim.simulation.testing import execute_test_task

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project

logger = logging.getLogger(__name__)

# Probability that fixing a defect introduces regressions
FIX_REGRESSION_PROBABILITY = 0.1
# Upper bound on regressions introduced by one fix
FIX_REGRESSION_MAX = 2


def _complete_feature(project: "Project", feature: Feature) -> list[Defect]:
    feature.mark_done()
    created = generate_defects(project, feature, max_defects=feature.size + feature.complexity)
    if project.rng.random() < project.regression_risk:
        created += generate_regression_defects(project, feature, max_defects=feature.complexity)
    return created


def _complete_defect(project: "Project", defect: Defect) -> list[Defect]:
    defect.mark_done()
    if project.rng.random() < FIX_REGRESSION_PROBABILITY:
        return generate_regression_defects(project, defect, max_defects=FIX_REGRESSION_MAX)
    return []


def _complete_test_task(project: "Project", task: TestTask) -> list[Defect]:
    execute_test_task(task)
    task.mark_done()
    return []


def complete_task(project: "Project", task: Task) -> list[Defect]:
    """Mark `task` done and apply its kind-specific side effects.

    Completing an already done task does nothing.

    Returns:
        Defects created as a consequence
    """
    if task.is_done():
        return []

    if task.kind is TaskKind.FEATURE:
        created = _complete_feature(project, task)
    elif task.kind is TaskKind.DEFECT:
        created = _complete_defect(project, task)
    else:
        created = _complete_test_task(project, task)

    if created:
        logger.debug("Completing %s %d created %d defects", task.kind.value, task.id, len(created))
    return created
