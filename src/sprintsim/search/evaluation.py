"""
Candidate Evaluation and Fitness.

Turns a batch of per-strategy win rates into the quantities the search cares
about: the observed ranking, how far it is from the target ranking, the
win-rate gaps between adjacent target strategies and a comparison against
the baseline configuration.

All win rates here are fractions (0..1); batch results report percentages
and are converted by `normalize_results`.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sprintsim.config.models import FitnessWeights
from sprintsim.models.base import StrategyName
from sprintsim.simulation.runner import StrategyResult

WinRates = dict[StrategyName, float]


def normalize_results(results: Iterable[StrategyResult]) -> WinRates:
    """Map batch results to fractional win rates, keeping batch order."""
    return {result.strategy: result.win_rate / 100 for result in results}


def rank_strategies(win_rates: WinRates) -> list[StrategyName]:
    """Strategies by descending win rate; ties keep their input order."""
    return sorted(win_rates, key=lambda s: win_rates[s], reverse=True)


def adjacent_differences(
    win_rates: WinRates, target_order: Sequence[StrategyName]
) -> tuple[float, float]:
    """Gaps between consecutive strategies of the target order.

    Returns:
        (smallest gap, sum of the positive gaps); the smallest gap is
        infinite when no adjacent pair is present in `win_rates`
    """
    min_diff = float("inf")
    total = 0.0
    for current, following in zip(target_order, target_order[1:]):
        if current in win_rates and following in win_rates:
            diff = win_rates[current] - win_rates[following]
            min_diff = min(min_diff, diff)
            total += max(0.0, diff)
    return min_diff, total


@dataclass
class BaselineInfo:
    """Reference point computed from the base configuration.

    Attributes:
        win_rates: Fractional win rate per strategy
        target_order: Desired ranking
        order: Observed ranking
        has_correct_order: Whether the baseline already ranks as desired
        best_strategy: Strategy with the highest win rate
    """

    win_rates: WinRates
    target_order: list[StrategyName]
    order: list[StrategyName] = field(init=False)
    has_correct_order: bool = field(init=False)
    best_strategy: StrategyName = field(init=False)

    def __post_init__(self) -> None:
        if not self.win_rates:
            raise ValueError("Baseline needs at least one strategy result")
        self.order = rank_strategies(self.win_rates)
        self.has_correct_order = self.order == list(self.target_order)
        self.best_strategy = self.order[0]

    @property
    def best_win_rate(self) -> float:
        return self.win_rates[self.best_strategy]


@dataclass
class ConfigEvaluation:
    """Evaluation of one candidate configuration.

    Attributes:
        win_rates: Fractional win rate per strategy
        target_order: Desired ranking
        min_difference: Required gap between adjacent target strategies
        baseline: Baseline to compare against
        fitness: Score assigned by FitnessCalculator
        error: Error message when the evaluation failed
    """

    win_rates: WinRates
    target_order: list[StrategyName]
    min_difference: float
    baseline: BaselineInfo | None = None
    fitness: float = float("-inf")
    error: str | None = None

    actual_order: list[StrategyName] = field(init=False)
    order_violations: int = field(init=False)
    min_adjacent_diff: float = field(init=False)
    total_difference: float = field(init=False)
    avg_win_rate: float = field(init=False)

    def __post_init__(self) -> None:
        self.actual_order = rank_strategies(self.win_rates)
        self.order_violations = sum(
            1
            for index, strategy in enumerate(self.target_order)
            if index >= len(self.actual_order) or self.actual_order[index] != strategy
        )
        self.min_adjacent_diff, self.total_difference = adjacent_differences(
            self.win_rates, self.target_order
        )
        self.avg_win_rate = (
            sum(self.win_rates.values()) / len(self.win_rates) if self.win_rates else 0.0
        )

    @classmethod
    def failed(
        cls, target_order: list[StrategyName], min_difference: float, error: str
    ) -> "ConfigEvaluation":
        """Evaluation for a candidate whose batch could not be run."""
        return cls(
            win_rates={},
            target_order=target_order,
            min_difference=min_difference,
            fitness=float("-inf"),
            error=error,
        )

    @property
    def is_failed(self) -> bool:
        return self.error is not None

    @property
    def order_matches(self) -> bool:
        return not self.is_failed and self.actual_order == list(self.target_order)

    @property
    def best_strategy(self) -> StrategyName | None:
        return self.actual_order[0] if self.actual_order else None

    @property
    def best_win_rate(self) -> float:
        if self.best_strategy is None:
            return 0.0
        return self.win_rates[self.best_strategy]

    @property
    def has_sufficient_gaps(self) -> bool:
        return self.min_adjacent_diff >= self.min_difference

    @property
    def outperforms_baseline(self) -> bool:
        if self.baseline is None or self.is_failed:
            return False
        return self.best_win_rate > self.baseline.best_win_rate

    def is_acceptable(self) -> bool:
        """Correct order, every gap large enough, and better than a good baseline."""
        if not self.order_matches or self.baseline is None:
            return False
        return self.has_sufficient_gaps and (
            self.outperforms_baseline or not self.baseline.has_correct_order
        )


class FitnessCalculator:
    """Scores evaluations for ranking candidates.

    A wrong ranking scores `wrong_order` per misplaced position. A correct
    ranking scores from the total positive gap, adjusted by whether the gaps
    meet the threshold and whether the baseline was already correctly
    ordered:

        gaps ok,  baseline ok:    total + baseline_bonus if it beats the
                                  baseline, else total * good_baseline_multiplier
        gaps ok,  baseline wrong: total + order_bonus
        gaps low, baseline ok:    total * insufficient_gaps_multiplier if it
                                  beats the baseline, else
                                  total * poor_performance_multiplier
        gaps low, baseline wrong: total + baseline_bonus

    Usage:
        calculator = FitnessCalculator(FitnessWeights())
        evaluation.fitness = calculator.calculate(evaluation)
    """

    def __init__(self, weights: FitnessWeights | None = None) -> None:
        self._weights = weights or FitnessWeights()

    @property
    def weights(self) -> FitnessWeights:
        return self._weights

    def calculate(self, evaluation: ConfigEvaluation) -> float:
        if evaluation.is_failed:
            return float("-inf")

        w = self._weights
        if not evaluation.order_matches:
            return evaluation.order_violations * w.wrong_order

        total = evaluation.total_difference
        baseline_ok = evaluation.baseline is not None and evaluation.baseline.has_correct_order
        beats_baseline = evaluation.outperforms_baseline

        if evaluation.has_sufficient_gaps:
            if baseline_ok:
                return total + w.baseline_bonus if beats_baseline else total * w.good_baseline_multiplier
            return total + w.order_bonus

        if baseline_ok:
            if beats_baseline:
                return total * w.insufficient_gaps_multiplier
            return total * w.poor_performance_multiplier
        return total + w.baseline_bonus


@dataclass
class CandidateResult:
    """A configuration together with its evaluation, for reporting.

    Attributes:
        parameters: Values of the searched parameters
        config: Full flat project configuration that was evaluated
        evaluation: Its evaluation
        accepted: Whether it met the acceptance criteria
    """

    parameters: dict[str, float]
    config: dict[str, Any]
    evaluation: ConfigEvaluation
    accepted: bool = False

    @property
    def fitness(self) -> float:
        return self.evaluation.fitness
