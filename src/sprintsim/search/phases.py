"""
Search Phases.

Phase 1 sweeps a coarse grid over the parameter ranges. Phase 2 hill-climbs
from the best grid candidate, adapting its step size and jumping randomly
when it stagnates. Both phases share one SearchState so the evaluation
budget and the accepted-config quota span the whole search.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sprintsim.config.models import ProjectConfig, SearchConfig
from sprintsim.search.evaluation import (
    BaselineInfo,
    CandidateResult,
    ConfigEvaluation,
    FitnessCalculator,
    normalize_results,
)
from sprintsim.search.parameters import FlatConfig, ParameterGenerator
from sprintsim.simulation.runner import StrategyResult
from sprintsim.utils.metrics import MetricsCollector, SearchPhase

logger = logging.getLogger(__name__)

Evaluator = Callable[[ProjectConfig], Awaitable[list[StrategyResult]]]


@dataclass
class SearchState:
    """Progress shared by the search phases.

    Attributes:
        iteration: Evaluations run so far
        accepted: Candidates meeting the acceptance criteria
        explored: Every evaluated candidate, accepted or not
        best: Highest-fitness candidate seen in the grid phase
    """

    iteration: int = 0
    accepted: list[CandidateResult] = field(default_factory=list)
    explored: list[CandidateResult] = field(default_factory=list)
    best: CandidateResult | None = None


class BasePhase:
    """Shared evaluation and bookkeeping for the search phases."""

    phase: SearchPhase

    def __init__(
        self,
        evaluator: Evaluator,
        fitness_calculator: FitnessCalculator,
        generator: ParameterGenerator,
        settings: SearchConfig,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._fitness = fitness_calculator
        self._generator = generator
        self._settings = settings
        self._metrics = metrics or MetricsCollector()

    def _target_order(self) -> list:
        return list(self._settings.target_order)

    def is_exhausted(self, state: SearchState) -> bool:
        """Whether the evaluation budget or the accepted quota is used up."""
        return (
            state.iteration >= self._settings.max_iterations
            or len(state.accepted) >= self._settings.max_configs_found
        )

    async def evaluate_config(
        self, config: Mapping[str, Any], baseline: BaselineInfo
    ) -> ConfigEvaluation:
        """Run a batch for `config` and score it.

        Any failure, including an invalid configuration, yields a failed
        evaluation with fitness -inf instead of propagating.
        """
        try:
            project_config = ProjectConfig.model_validate(dict(config))
            results = await self._evaluator(project_config)
            evaluation = ConfigEvaluation(
                normalize_results(results),
                self._target_order(),
                self._settings.min_difference,
                baseline=baseline,
            )
            evaluation.fitness = self._fitness.calculate(evaluation)
            return evaluation
        except Exception as e:
            logger.error("Failed to evaluate config: %s", e)
            return ConfigEvaluation.failed(
                self._target_order(), self._settings.min_difference, str(e)
            )

    def record(
        self, state: SearchState, config: FlatConfig, evaluation: ConfigEvaluation
    ) -> CandidateResult:
        candidate = CandidateResult(
            parameters=self._generator.parameters_of(config),
            config=dict(config),
            evaluation=evaluation,
            accepted=evaluation.is_acceptable(),
        )
        state.iteration += 1
        state.explored.append(candidate)
        if candidate.accepted:
            state.accepted.append(candidate)
            logger.info(
                "Accepted config %s (fitness %.3f)", candidate.parameters, evaluation.fitness
            )
        self._metrics.record_evaluation(
            self.phase,
            evaluation.fitness,
            accepted=candidate.accepted,
            failed=evaluation.is_failed,
        )
        logger.debug(
            "Evaluation %d: order=%s fitness=%.3f",
            state.iteration,
            [s.value for s in evaluation.actual_order],
            evaluation.fitness,
        )
        return candidate


class GridSearchPhase(BasePhase):
    """Phase 1: evaluate the grid until the budget or the quota runs out."""

    phase = SearchPhase.GRID

    async def execute(
        self, base: Mapping[str, Any], baseline: BaselineInfo, state: SearchState
    ) -> SearchState:
        steps = self._settings.grid_steps
        logger.info(
            "Grid search over %d parameters, %d candidates (budget %d)",
            len(self._generator.param_names),
            self._generator.grid_size(steps),
            self._settings.max_iterations,
        )

        for config in self._generator.grid_configs(base, steps):
            if self.is_exhausted(state):
                break
            evaluation = await self.evaluate_config(config, baseline)
            candidate = self.record(state, config, evaluation)
            if state.best is None or evaluation.fitness > state.best.fitness:
                state.best = candidate

        return state


class LocalSearchPhase(BasePhase):
    """Phase 2: adaptive hill-climbing from the best grid candidate.

    Each round tries +step and -step on every parameter, moving whenever the
    fitness improves. After an improving round the step grows (up to
    max_step_size); otherwise it shrinks (down to min_step_size), and once it
    falls below the initial step the current point jumps randomly and the
    step resets to twice the initial size.
    """

    phase = SearchPhase.LOCAL

    async def execute(self, baseline: BaselineInfo, state: SearchState) -> SearchState:
        if self.is_exhausted(state) or state.best is None:
            return state
        if all(r.span == 0 for r in self._generator.ranges.values()):
            logger.info("Local search skipped: no parameter can move")
            return state

        settings = self._settings
        current = dict(state.best.config)
        current_eval = state.best.evaluation
        step = settings.initial_step_size
        logger.info("Local search from fitness %.3f", current_eval.fitness)

        while not self.is_exhausted(state):
            improved = False
            for name in self._generator.param_names:
                for direction in (1, -1):
                    candidate = self._generator.adjust_parameter(current, name, direction * step)
                    if candidate[name] == current[name]:
                        continue
                    evaluation = await self.evaluate_config(candidate, baseline)
                    self.record(state, candidate, evaluation)
                    if evaluation.fitness > current_eval.fitness:
                        current, current_eval = candidate, evaluation
                        improved = True
                    if self.is_exhausted(state):
                        return state

            if improved:
                step = min(settings.max_step_size, step * settings.step_size_increase)
            else:
                step = max(settings.min_step_size, step * settings.step_size_decrease)
                if step < settings.initial_step_size:
                    current = self._generator.random_adjustment(current)
                    step = settings.initial_step_size * 2
                    logger.debug("Local search stagnated; jumped to %s", self._generator.parameters_of(current))

        return state
