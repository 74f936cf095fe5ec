"""
sprintsim Test Configuration and Fixtures

This module provides pytest fixtures shared by the test suite. Every random
source is seeded so the stochastic parts of the simulation behave
deterministically.

Fixture Categories:
- Environment isolation: global config state and SPRINTSIM_* variables
- Randomness: seeded random.Random instances
- Projects: empty and initialized projects with known parameters
- Search: canned batch results and fake evaluators
"""

import random
from pathlib import Path

import pytest

from sprintsim.config import ENV_VAR_OVERRIDES, ProjectConfig, reset_config, reset_environment
from sprintsim.models import Feature, TaskStatus
from sprintsim.simulation import Project

# Variables read by the loader besides the overrides table
_EXTRA_ENV_VARS = ["SPRINTSIM_CONFIG"]


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Reset global config state and strip SPRINTSIM_* variables.

    Marks dotenv as already loaded so a developer's .env file cannot leak
    into the tests.
    """
    import sprintsim.config.environment as env_module

    reset_config()
    reset_environment()
    for var in list(ENV_VAR_OVERRIDES) + _EXTRA_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(env_module, "_dotenv_loaded", True)

    yield

    reset_config()
    reset_environment()


# =============================================================================
# Randomness
# =============================================================================


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(42)


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def project(rng: random.Random) -> Project:
    """Empty project with dev effort 50 and test effort 30."""
    return Project(1, "Test", dev_effort=50, test_effort=30, rng=rng)


@pytest.fixture
def done_feature(project: Project) -> Feature:
    """A completed feature in the backlog, without defects."""
    feature = Feature(
        project.get_next_id(),
        "Checkout",
        project,
        size=4,
        complexity=3,
        status=TaskStatus.DONE,
    )
    project.add_to_backlog(feature)
    return feature


@pytest.fixture
def small_config() -> ProjectConfig:
    """Project configuration that finishes in a handful of sprints."""
    return ProjectConfig(
        dev_effort=10,
        test_effort=5,
        regression_risk=0.1,
        min_feature_size=1,
        max_feature_size=4,
        min_feature_complexity=1,
        max_feature_complexity=3,
        feature_count=4,
        max_stealth=0.6,
        max_sprints=60,
    )
