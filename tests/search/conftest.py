"""
Search Test Fixtures

Canned batch results and a scripted evaluator so the optimizer can be
exercised without running simulations.
"""

from collections.abc import Sequence

import pytest

from sprintsim.config import ProjectConfig
from sprintsim.models import StrategyName
from sprintsim.simulation import StrategyResult


def _batch(order: Sequence[StrategyName], top: float = 80.0, gap: float = 10.0) -> list[StrategyResult]:
    return [
        StrategyResult(strategy=strategy, wins=1, losses=1, win_rate=top - index * gap)
        for index, strategy in enumerate(order)
    ]


class ScriptedEvaluator:
    """Fake evaluator returning canned batches.

    The first call answers the baseline; later calls are answered by
    `candidate`, a function of the evaluated ProjectConfig.
    """

    def __init__(self, baseline, candidate) -> None:
        self._baseline = baseline
        self._candidate = candidate
        self.calls: list[ProjectConfig] = []

    async def __call__(self, config: ProjectConfig) -> list[StrategyResult]:
        self.calls.append(config)
        if len(self.calls) == 1:
            if isinstance(self._baseline, Exception):
                raise self._baseline
            return self._baseline
        return self._candidate(config)


@pytest.fixture
def target_order() -> list[StrategyName]:
    """Default target ranking."""
    return [StrategyName.FOCUSED, StrategyName.RISK, StrategyName.CYCLE, StrategyName.DUMBCYCLE]


@pytest.fixture
def wrong_order(target_order) -> list[StrategyName]:
    """Target ranking reversed."""
    return list(reversed(target_order))


@pytest.fixture
def make_batch():
    """Build batch results ranking `order` best first, `gap` points apart."""
    return _batch


@pytest.fixture
def scripted_evaluator():
    """The ScriptedEvaluator class."""
    return ScriptedEvaluator
