"""
Configuration Search Optimizer.

Finds project configurations under which the testing strategies rank in a
target order with a minimum win-rate gap between neighbours.

Flow:
1. Evaluate the base configuration once to get the baseline ranking.
2. Grid phase over the configured parameter ranges.
3. Local phase, if the grid did not fill the accepted quota.
"""

import logging
import random
from dataclasses import dataclass, field

from sprintsim.config.models import ProjectConfig, SearchConfig
from sprintsim.models.base import StrategyName
from sprintsim.search.evaluation import (
    BaselineInfo,
    CandidateResult,
    FitnessCalculator,
    normalize_results,
)
from sprintsim.search.parameters import ParameterGenerator
from sprintsim.search.phases import Evaluator, GridSearchPhase, LocalSearchPhase, SearchState
from sprintsim.simulation.runner import StrategyResult, run_batch_simulation
from sprintsim.utils.metrics import MetricsCollector, SearchMetrics, SearchPhase, get_structured_logger

logger = logging.getLogger(__name__)


class SearchError(RuntimeError):
    """Raised when the search cannot start (e.g. the baseline fails)."""


class BatchEvaluator:
    """Default evaluator: a silent batch simulation per candidate.

    Each call draws a fresh generator from `rng`, so a seeded search is
    reproducible.
    """

    def __init__(self, runs: int, rng: random.Random | None = None) -> None:
        self._runs = runs
        self._rng = rng if rng is not None else random.Random()

    async def __call__(self, config: ProjectConfig) -> list[StrategyResult]:
        return await run_batch_simulation(
            self._runs,
            config,
            silent=True,
            rng=random.Random(self._rng.getrandbits(64)),
        )


@dataclass
class SearchOutcome:
    """Result of a search run.

    Attributes:
        baseline: Baseline ranking and win rates
        target_order: Desired ranking
        min_difference: Required adjacent gap
        accepted: Candidates meeting the acceptance criteria
        explored: Every evaluated candidate
        evaluations: Number of candidate evaluations
        metrics: Phase and counter metrics
    """

    baseline: BaselineInfo
    target_order: list[StrategyName]
    min_difference: float
    accepted: list[CandidateResult] = field(default_factory=list)
    explored: list[CandidateResult] = field(default_factory=list)
    evaluations: int = 0
    metrics: SearchMetrics = field(default_factory=SearchMetrics)

    @property
    def found(self) -> bool:
        return bool(self.accepted)

    def top_candidates(self, count: int = 3) -> list[CandidateResult]:
        """Best candidates by fitness; accepted ones win ties."""
        ranked = sorted(
            self.explored, key=lambda c: (c.fitness, c.accepted), reverse=True
        )
        return ranked[:count]

    def parameter_ranges(self, count: int = 5) -> dict[str, tuple[float, float]]:
        """Min and max of each searched parameter over the top explored candidates."""
        ranges: dict[str, tuple[float, float]] = {}
        for candidate in self.top_candidates(count):
            if candidate.evaluation.is_failed:
                continue
            for name, value in candidate.parameters.items():
                low, high = ranges.get(name, (value, value))
                ranges[name] = (min(low, value), max(high, value))
        return ranges


class ConfigSearchOptimizer:
    """Two-phase search over project parameters.

    Usage:
        optimizer = ConfigSearchOptimizer(SearchConfig(), rng=random.Random(1))
        outcome = await optimizer.search()
        for candidate in outcome.accepted:
            print(candidate.parameters)
    """

    def __init__(
        self,
        settings: SearchConfig | None = None,
        evaluator: Evaluator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the optimizer.

        Args:
            settings: Search configuration
            evaluator: Async callable running a batch for one configuration
                (default: BatchEvaluator with settings.simulation_runs)
            rng: Random source for the evaluator and the random jumps
        """
        self._settings = settings or SearchConfig()
        self._rng = rng if rng is not None else random.Random()
        self._evaluator = evaluator or BatchEvaluator(self._settings.simulation_runs, self._rng)
        self._fitness = FitnessCalculator(self._settings.fitness)
        self._generator = ParameterGenerator(
            self._settings.search_ranges,
            rng=self._rng,
            jump_probability=self._settings.random_jump_probability,
        )
        self._metrics = MetricsCollector()
        self._log = get_structured_logger(__name__)

    @property
    def settings(self) -> SearchConfig:
        return self._settings

    @property
    def generator(self) -> ParameterGenerator:
        return self._generator

    async def evaluate_baseline(self) -> BaselineInfo:
        """Run the base configuration once.

        Raises:
            SearchError: If the baseline batch fails
        """
        async with self._metrics.phase_context(SearchPhase.BASELINE) as phase:
            self._log.log_phase_start(SearchPhase.BASELINE)
            try:
                results = await self._evaluator(self._settings.base_config)
            except Exception as e:
                raise SearchError(f"Baseline evaluation failed: {e}") from e
            baseline = BaselineInfo(normalize_results(results), list(self._settings.target_order))
        self._log.log_phase_end(phase)
        logger.info(
            "Baseline order %s (%s), best %s at %.1f%%",
            " > ".join(s.value for s in baseline.order),
            "matches target" if baseline.has_correct_order else "differs from target",
            baseline.best_strategy.value,
            baseline.best_win_rate * 100,
        )
        return baseline

    async def search(self) -> SearchOutcome:
        """Run baseline, grid and local phases.

        Raises:
            SearchError: If the baseline cannot be evaluated
        """
        baseline = await self.evaluate_baseline()
        state = SearchState()
        base = self._settings.base_config.model_dump()
        phase_args = (self._evaluator, self._fitness, self._generator, self._settings, self._metrics)

        async with self._metrics.phase_context(SearchPhase.GRID) as grid_metrics:
            self._log.log_phase_start(SearchPhase.GRID)
            await GridSearchPhase(*phase_args).execute(base, baseline, state)
        self._log.log_phase_end(grid_metrics)

        local = LocalSearchPhase(*phase_args)
        if not local.is_exhausted(state) and state.best is not None:
            async with self._metrics.phase_context(SearchPhase.LOCAL) as local_metrics:
                self._log.log_phase_start(SearchPhase.LOCAL)
                await local.execute(baseline, state)
            self._log.log_phase_end(local_metrics)

        logger.info(
            "Search finished: %d evaluations, %d accepted", state.iteration, len(state.accepted)
        )
        return SearchOutcome(
            baseline=baseline,
            target_order=list(self._settings.target_order),
            min_difference=self._settings.min_difference,
            accepted=state.accepted,
            explored=state.explored,
            evaluations=state.iteration,
            metrics=self._metrics.summary,
        )
