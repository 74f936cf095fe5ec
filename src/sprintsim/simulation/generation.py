"""
Feature and defect generation.

All draws go through the project's random source so a seeded project
reproduces the same backlog and the same defects.
"""

import logging
import math
import random
from collections.abc import Mapping
from typing import TYPE_CHECKING, TypeVar

from sprintsim.config.models import ProjectConfig
from sprintsim.models.base import DEFECT_CATEGORIES, DefectCategory
from sprintsim.models.tasks import Defect, Feature, Task

if TYPE_CHECKING:
    from sprintsim.simulation.project import Project

logger = logging.getLogger(__name__)

K = TypeVar("K")

FEATURE_NAMES = [
    "Authentication",
    "User Management",
    "Search",
    "Notifications",
    "Data Import",
    "Dashboard",
    "Settings",
    "Localization",
    "Backup & Restore",
    "Audit Logging",
    "API Integration",
    "User Profile",
    "Preferences",
    "Help & Documentation",
    "Dark/Light Theme",
    "Accessibility Features",
    "Mobile Responsiveness",
    "Reporting & Analytics",
    "Data Visualization",
    "Content Management",
    "Workflow Engine",
    "Calendar Integration",
    "Email Integration",
    "Payment Processing",
]

DEFECT_NAMES: dict[DefectCategory, list[str]] = {
    DefectCategory.FUNCTIONALITY: [
        "Input validation error",
        "Missing error handling",
        "Incorrect calculation",
        "Data inconsistency",
        "Incorrect business logic",
    ],
    DefectCategory.USABILITY: [
        "Confusing navigation",
        "Confusing error message",
        "Inconsistent terminology",
        "Wrong icon usage",
        "Missing accessibility tags",
    ],
    DefectCategory.PERFORMANCE: [
        "Slow response time",
        "Memory leak",
        "High CPU usage",
        "Memory consumption spike",
        "Poor query performance",
    ],
    DefectCategory.SECURITY: [
        "User data is leaking",
        "SQL can be injected",
        "Vulnerable for XSS",
        "Auth can be bypassed",
        "Session can be hijacked",
    ],
}


def weighted_choice(rng: random.Random, weights: Mapping[K, float]) -> K:
    """Pick a key with probability proportional to its weight.

    Uses a single cumulative draw over the mapping's iteration order. When
    every weight is zero the first key is returned.

    Raises:
        ValueError: If `weights` is empty
    """
    if not weights:
        raise ValueError("weighted_choice needs at least one option")

    keys = list(weights)
    total = sum(weights.values())
    if total <= 0:
        return keys[0]

    threshold = rng.random() * total
    cumulative = 0.0
    for key in keys:
        cumulative += weights[key]
        if threshold < cumulative:
            return key
    return keys[-1]


def defect_count(rng: random.Random, max_defects: float) -> int:
    """Number of direct defects, skewed towards `max_defects`."""
    return math.floor(rng.random() ** 0.25 * max_defects) + 1


def _shuffled(rng: random.Random, names: list[str]) -> list[str]:
    pool = list(names)
    rng.shuffle(pool)
    return pool


def _category_weights(task: Task) -> dict[DefectCategory, float]:
    if isinstance(task, Feature):
        risks = task.risks
        return {category: risks[category] for category in DEFECT_CATEGORIES}
    return {category: 1.0 for category in DEFECT_CATEGORIES}


def _new_defect(
    project: "Project",
    cause: Task,
    affected: Task,
    category: DefectCategory,
    name: str,
) -> Defect:
    """Create, link and record one defect shaped by the affected task."""
    rng = project.rng
    upper = max(1, int(affected.complexity))
    stealth = rng.random() * project.max_stealth * affected.complexity / project.max_feature_complexity
    defect = Defect(
        project.get_next_id(),
        name,
        project,
        size=rng.randint(1, upper),
        complexity=rng.randint(1, upper),
        cause_task=cause,
        severity=rng.randint(1, 3),
        category=category,
        stealth=min(1.0, stealth),
        affected_task=affected,
    )
    project.link_tasks(defect, cause)
    if affected is not cause:
        project.link_tasks(defect, affected)
    project.add_defect(defect)
    return defect


def generate_features(project: "Project") -> list[Feature]:
    """Create `project.feature_count` features and add them to the backlog.

    Sizes and complexities are uniform integers within the floored project
    bounds; each category gets an independent uniform risk weight.
    """
    rng = project.rng
    names = _shuffled(rng, FEATURE_NAMES)
    created = []

    for i in range(math.floor(project.feature_count)):
        risks = {category: rng.random() for category in DEFECT_CATEGORIES}
        feature = Feature(
            project.get_next_id(),
            f"{i + 1}. {names[i % len(names)]}",
            project,
            size=rng.randint(
                math.floor(project.min_feature_size), math.floor(project.max_feature_size)
            ),
            complexity=rng.randint(
                math.floor(project.min_feature_complexity),
                math.floor(project.max_feature_complexity),
            ),
            risks=risks,
        )
        project.add_to_backlog(feature)
        created.append(feature)

    logger.debug("Generated %d features for project %d", len(created), project.id)
    return created


def generate_defects(project: "Project", task: Task, max_defects: float = 3) -> list[Defect]:
    """Create the direct defects caused by completing `task`.

    Categories follow the task's risk weights. Size and complexity are
    uniform in [1, task.complexity], severity in [1, 3], and stealth grows
    with the task's complexity relative to the project maximum.
    """
    rng = project.rng
    pools = {category: _shuffled(rng, names) for category, names in DEFECT_NAMES.items()}
    weights = _category_weights(task)
    count = defect_count(rng, max_defects)

    created = []
    for i in range(count):
        category = weighted_choice(rng, weights)
        pool = pools[category]
        created.append(_new_defect(project, task, task, category, pool[i % len(pool)]))

    logger.debug(
        "Task %d produced %d defects (max %s)", task.id, len(created), max_defects
    )
    return created


def generate_regression_defects(
    project: "Project", cause: Task, max_defects: float = 3
) -> list[Defect]:
    """Create regression defects caused by `cause` in other completed features.

    Affected features are drawn weighted by how many defects they already
    have, so defects cluster; when none has any, the draw is uniform. A
    defect cause passes its category on, otherwise the affected feature's
    risks decide.
    """
    rng = project.rng
    candidates = [f for f in project.done_features() if f.id != cause.id]
    if not candidates:
        return []

    count = math.floor(rng.random() * max_defects) + 1
    inherited = cause.category if isinstance(cause, Defect) else None

    created = []
    for _ in range(count):
        defect_weights = {feature: float(len(feature.defects())) for feature in candidates}
        if sum(defect_weights.values()) > 0:
            affected = weighted_choice(rng, defect_weights)
        else:
            affected = rng.choice(candidates)

        category = inherited or weighted_choice(rng, _category_weights(affected))
        name = rng.choice(DEFECT_NAMES[category])
        created.append(_new_defect(project, cause, affected, category, name))

    logger.debug("Task %d caused %d regression defects", cause.id, len(created))
    return created


def initialize_project(project: "Project", config: ProjectConfig | None = None) -> list[Feature]:
    """Apply `config` to the project and generate its features.

    Raises:
        ProjectError: If the configuration is rejected by the project
    """
    if config is not None:
        project.apply_config(config)
    return generate_features(project)


def create_project(
    config: ProjectConfig | None = None,
    rng: random.Random | None = None,
    name: str = "Simulation Project",
) -> "Project":
    """Build a fresh, initialized project."""
    from sprintsim.simulation.project import Project

    project = Project(1, name, rng=rng)
    initialize_project(project, config or ProjectConfig())
    return project
