"""
Testing operations.

Stateless functions over (project, feature, effort). Knowledge-type
operations raise a feature's knowledge or risk knowledge; detection
operations try to surface the feature's undiscovered defects.

Every operation validates `0 < effort <= project.test_effort`, and detection
operations additionally require the feature to be done.
"""

import logging
from typing import TYPE_CHECKING

from sprintsim.models.base import DefectCategory, TestTaskKind
from sprintsim.models.tasks import Defect, Feature, TestTask

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project

logger = logging.getLogger(__name__)

# Detection factor for a test aimed at another category (before the coefficient)
OFF_CATEGORY_FACTOR = 0.2

# Share of validation effort per category, out of 12
FIX_VALIDATION_SHARES = {
    DefectCategory.FUNCTIONALITY: 5,
    DefectCategory.USABILITY: 4,
    DefectCategory.PERFORMANCE: 2,
    DefectCategory.SECURITY: 1,
}


class TestingError(ValueError):
    """Raised when a testing operation is called with invalid arguments."""

    __test__ = False  # not a pytest test class


def _validate_effort(project: "Project", effort: float) -> None:
    if effort <= 0 or effort > project.test_effort:
        raise TestingError("testing: invalid effort")


def _require_done(feature: Feature) -> None:
    if not feature.is_done():
        raise TestingError("testing: cannot test a feature that is not done")


def _knowledge_gain(feature: Feature, effort: float) -> float:
    return effort / max(feature.size, feature.complexity)


def gather_knowledge(project: "Project", feature: Feature, effort: float) -> float:
    """Raise the feature's knowledge, capped at 1.

    Returns:
        The new knowledge value
    """
    _validate_effort(project, effort)
    feature.knowledge = min(1.0, feature.knowledge + _knowledge_gain(feature, effort))
    return feature.knowledge


def risk_assessment(project: "Project", feature: Feature, effort: float) -> float:
    """Raise the feature's risk knowledge, capped at 1."""
    _validate_effort(project, effort)
    feature.risk_knowledge = min(1.0, feature.risk_knowledge + _knowledge_gain(feature, effort))
    return feature.risk_knowledge


def detection_score(
    project: "Project", feature: Feature, defect: Defect, category: DefectCategory, effort: float
) -> float:
    """Draw a detection score for one defect.

    score = u * (1 + ce * effort / size) * type_factor * min(1, ck * knowledge)

    where type_factor is 1 for a matching category and min(1, 0.2 * ct)
    otherwise. With all coefficients at 1 this is
    u * (1 + effort / size) * (1 or 0.2) * knowledge.
    """
    effort_factor = 1 + project.test_effort_coefficient * effort / feature.size
    if defect.category == category:
        type_factor = 1.0
    else:
        type_factor = min(1.0, OFF_CATEGORY_FACTOR * project.test_type_coefficient)
    knowledge_factor = min(1.0, project.test_knowledge_coefficient * feature.knowledge)
    return project.rng.random() * effort_factor * type_factor * knowledge_factor


def find_defects(
    project: "Project", feature: Feature, category: DefectCategory | str, effort: float
) -> list[Defect]:
    """Try to surface the feature's undiscovered defects.

    A defect is found when its detection score reaches its stealth; found
    defects are added to the backlog.

    Returns:
        Defects found by this call

    Raises:
        TestingError: On invalid effort or a feature that is not done
    """
    _validate_effort(project, effort)
    _require_done(feature)
    category = DefectCategory(category)

    found = []
    for defect in feature.defects():
        if defect.is_found:
            continue
        if detection_score(project, feature, defect, category, effort) >= defect.stealth:
            project.defect_found(defect)
            found.append(defect)

    if found:
        logger.debug(
            "%s test on feature %d found %d defects", category.value, feature.id, len(found)
        )
    return found


def exploratory_test(project: "Project", feature: Feature, effort: float) -> list[Defect]:
    """Half the effort on knowledge, a quarter each on functionality and usability."""
    _validate_effort(project, effort)
    _require_done(feature)
    gather_knowledge(project, feature, effort / 2)
    found = find_defects(project, feature, DefectCategory.FUNCTIONALITY, effort / 4)
    found += find_defects(project, feature, DefectCategory.USABILITY, effort / 4)
    return found


def functional_test(project: "Project", feature: Feature, effort: float) -> list[Defect]:
    return find_defects(project, feature, DefectCategory.FUNCTIONALITY, effort)


def performance_test(project: "Project", feature: Feature, effort: float) -> list[Defect]:
    return find_defects(project, feature, DefectCategory.PERFORMANCE, effort)


def security_test(project: "Project", feature: Feature, effort: float) -> list[Defect]:
    return find_defects(project, feature, DefectCategory.SECURITY, effort)


def usability_test(project: "Project", feature: Feature, effort: float) -> list[Defect]:
    return find_defects(project, feature, DefectCategory.USABILITY, effort)


def validate_fix(project: "Project", defect: Defect, effort: float) -> list[Defect]:
    """Retest the features touched by a fixed defect.

    The effort is spread 5:4:2:1 over functionality, usability, performance
    and security on every completed feature linked to the defect.

    Raises:
        TestingError: On invalid effort or a defect that is not fixed
    """
    _validate_effort(project, effort)
    if not defect.is_done():
        raise TestingError("testing: cannot validate a defect that is not fixed")

    total_shares = sum(FIX_VALIDATION_SHARES.values())
    found = []
    for task in defect.linked_tasks:
        if not isinstance(task, Feature) or not task.is_done():
            continue
        for category, share in FIX_VALIDATION_SHARES.items():
            found += find_defects(project, task, category, effort * share / total_shares)
    return found


def _run_for_feature(project: "Project", kind: TestTaskKind, feature: Feature, effort: float) -> None:
    if kind is TestTaskKind.GATHER_KNOWLEDGE:
        gather_knowledge(project, feature, effort)
    elif kind is TestTaskKind.RISK_ASSESSMENT:
        risk_assessment(project, feature, effort)
    elif kind is TestTaskKind.EXPLORATORY:
        exploratory_test(project, feature, effort)
    else:
        find_defects(project, feature, kind.category, effort)


def execute_test_task(task: TestTask) -> None:
    """Run a test task: its effort is divided evenly across its features."""
    features = task.features
    effort = task.effort_per_feature()
    if not features or effort <= 0:
        logger.debug("Test task %d has nothing to test", task.id)
        return

    for feature in features:
        _run_for_feature(task.project, task.test_kind, feature, effort)
