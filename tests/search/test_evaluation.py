"""Tests for candidate evaluation and the fitness function."""

import math

import pytest

from sprintsim.config import FitnessWeights
from sprintsim.models import StrategyName
from sprintsim.search import (
    BaselineInfo,
    CandidateResult,
    ConfigEvaluation,
    FitnessCalculator,
    adjacent_differences,
    normalize_results,
    rank_strategies,
)

F, R, C, D = StrategyName.FOCUSED, StrategyName.RISK, StrategyName.CYCLE, StrategyName.DUMBCYCLE


def rates(order, top, gap):
    return {strategy: top - index * gap for index, strategy in enumerate(order)}


@pytest.fixture
def good_baseline(target_order):
    return BaselineInfo(rates(target_order, 0.5, 0.1), target_order)


@pytest.fixture
def bad_baseline(target_order, wrong_order):
    return BaselineInfo(rates(wrong_order, 0.5, 0.1), target_order)


@pytest.fixture
def calculator():
    return FitnessCalculator(FitnessWeights())


def _evaluate(calculator, win_rates, target_order, baseline, min_difference=0.05):
    evaluation = ConfigEvaluation(win_rates, target_order, min_difference, baseline=baseline)
    evaluation.fitness = calculator.calculate(evaluation)
    return evaluation


class TestHelpers:
    """Tests for the ranking helpers."""

    def test_normalize_results(self, make_batch, target_order):
        win_rates = normalize_results(make_batch(target_order, top=80, gap=20))
        assert win_rates[F] == pytest.approx(0.8)
        assert win_rates[D] == pytest.approx(0.2)

    def test_rank_is_stable_on_ties(self):
        assert rank_strategies({R: 0.5, F: 0.5, C: 0.1}) == [R, F, C]

    def test_adjacent_differences(self, target_order):
        min_diff, total = adjacent_differences({F: 0.2, R: 0.5, C: 0.4, D: 0.1}, target_order)
        assert min_diff == pytest.approx(-0.3)
        assert total == pytest.approx(0.4)

    def test_adjacent_differences_without_pairs(self, target_order):
        min_diff, total = adjacent_differences({F: 0.2}, target_order)
        assert math.isinf(min_diff)
        assert total == 0.0


class TestBaselineInfo:
    """Tests for the baseline reference point."""

    def test_correct_order(self, good_baseline):
        assert good_baseline.has_correct_order
        assert good_baseline.best_strategy is F
        assert good_baseline.best_win_rate == pytest.approx(0.5)

    def test_wrong_order(self, bad_baseline):
        assert not bad_baseline.has_correct_order
        assert bad_baseline.best_strategy is D

    def test_requires_results(self, target_order):
        with pytest.raises(ValueError):
            BaselineInfo({}, target_order)


class TestConfigEvaluation:
    """Tests for derived evaluation fields."""

    def test_order_violations(self, target_order):
        evaluation = ConfigEvaluation({R: 0.6, F: 0.5, C: 0.4, D: 0.3}, target_order, 0.05)
        assert evaluation.actual_order == [R, F, C, D]
        assert evaluation.order_violations == 2
        assert not evaluation.order_matches

    def test_average_and_best(self, target_order):
        evaluation = ConfigEvaluation(rates(target_order, 0.8, 0.2), target_order, 0.05)
        assert evaluation.avg_win_rate == pytest.approx(0.5)
        assert evaluation.best_strategy is F
        assert evaluation.best_win_rate == pytest.approx(0.8)

    def test_failed(self, target_order):
        evaluation = ConfigEvaluation.failed(target_order, 0.05, "boom")
        assert evaluation.is_failed
        assert evaluation.fitness == float("-inf")
        assert evaluation.best_strategy is None
        assert evaluation.best_win_rate == 0.0
        assert not evaluation.order_matches
        assert not evaluation.is_acceptable()

    def test_not_acceptable_without_baseline(self, target_order):
        evaluation = ConfigEvaluation(rates(target_order, 0.8, 0.1), target_order, 0.05)
        assert not evaluation.is_acceptable()


class TestFitnessCalculator:
    """Tests for every branch of the fitness function."""

    def test_gaps_ok_beats_good_baseline(self, calculator, target_order, good_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.8, 0.1), target_order, good_baseline)
        assert evaluation.fitness == pytest.approx(0.3 + 1.0)
        assert evaluation.is_acceptable()

    def test_gaps_ok_below_good_baseline(self, calculator, target_order, good_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.4, 0.1), target_order, good_baseline)
        assert evaluation.fitness == pytest.approx(0.3 * 0.3)
        assert not evaluation.is_acceptable()

    def test_gaps_ok_bad_baseline(self, calculator, target_order, bad_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.4, 0.1), target_order, bad_baseline)
        assert evaluation.fitness == pytest.approx(0.3 + 2.0)
        assert evaluation.is_acceptable()

    def test_small_gaps_beat_good_baseline(self, calculator, target_order, good_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.8, 0.02), target_order, good_baseline)
        assert evaluation.fitness == pytest.approx(0.06 * 0.6)
        assert not evaluation.is_acceptable()

    def test_small_gaps_below_good_baseline(self, calculator, target_order, good_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.4, 0.02), target_order, good_baseline)
        assert evaluation.fitness == pytest.approx(0.06 * 0.2)

    def test_small_gaps_bad_baseline(self, calculator, target_order, bad_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.4, 0.02), target_order, bad_baseline)
        assert evaluation.fitness == pytest.approx(0.06 + 1.0)
        assert not evaluation.is_acceptable()

    def test_wrong_order_penalty(self, calculator, target_order, wrong_order, good_baseline):
        reversed_eval = _evaluate(calculator, rates(wrong_order, 0.8, 0.1), target_order, good_baseline)
        assert reversed_eval.fitness == pytest.approx(-40.0)

        swapped = _evaluate(calculator, {R: 0.6, F: 0.5, C: 0.4, D: 0.3}, target_order, good_baseline)
        assert swapped.fitness == pytest.approx(-20.0)

    def test_failed_is_negative_infinity(self, calculator, target_order):
        evaluation = ConfigEvaluation.failed(target_order, 0.05, "boom")
        assert calculator.calculate(evaluation) == float("-inf")

    def test_custom_weights(self, target_order, bad_baseline):
        calculator = FitnessCalculator(FitnessWeights(order_bonus=5.0))
        evaluation = _evaluate(calculator, rates(target_order, 0.4, 0.1), target_order, bad_baseline)
        assert evaluation.fitness == pytest.approx(0.3 + 5.0)

    def test_candidate_result_fitness(self, calculator, target_order, good_baseline):
        evaluation = _evaluate(calculator, rates(target_order, 0.8, 0.1), target_order, good_baseline)
        candidate = CandidateResult({"max_stealth": 0.5}, {"max_stealth": 0.5}, evaluation, True)
        assert candidate.fitness == evaluation.fitness
