"""Tests for grid and local-move generation."""

import random

import pytest

from sprintsim.config import ParameterRange
from sprintsim.search import ParameterGenerator


@pytest.fixture
def ranges():
    return {
        "regression_risk": ParameterRange(min=0.1, max=0.4),
        "max_stealth": ParameterRange(min=0.3, max=0.9),
        "test_type_coefficient": ParameterRange(min=0.1, max=0.3),
    }


@pytest.fixture
def base():
    return {"dev_effort": 10.0, "regression_risk": 0.2, "max_stealth": 0.5, "test_type_coefficient": 0.2}


class TestGrid:
    """Tests for grid enumeration."""

    @pytest.mark.parametrize("steps", [1, 2, 3, 4])
    def test_grid_size(self, ranges, base, steps):
        generator = ParameterGenerator(ranges, rng=random.Random(0))
        configs = list(generator.grid_configs(base, steps))
        assert len(configs) == steps ** len(ranges)
        assert generator.grid_size(steps) == len(configs)

    def test_grid_values(self, ranges):
        generator = ParameterGenerator(ranges)
        assert generator.grid_values("max_stealth", 3) == pytest.approx([0.3, 0.6, 0.9])
        assert generator.grid_values("max_stealth", 1) == [0.3]

    def test_last_parameter_changes_fastest(self, ranges, base):
        generator = ParameterGenerator(ranges)
        configs = list(generator.grid_configs(base, 2))
        assert [c["test_type_coefficient"] for c in configs[:2]] == pytest.approx([0.1, 0.3])
        assert configs[0]["regression_risk"] == configs[3]["regression_risk"] == pytest.approx(0.1)
        assert configs[4]["regression_risk"] == pytest.approx(0.4)

    def test_base_values_are_kept(self, ranges, base):
        generator = ParameterGenerator(ranges)
        assert all(c["dev_effort"] == 10.0 for c in generator.grid_configs(base, 2))

    def test_all_combinations_distinct(self, ranges, base):
        generator = ParameterGenerator(ranges)
        seen = {tuple(sorted(generator.parameters_of(c).items())) for c in generator.grid_configs(base, 3)}
        assert len(seen) == 27

    def test_no_ranges(self, base):
        generator = ParameterGenerator({})
        assert list(generator.grid_configs(base, 3)) == [base]
        assert generator.grid_size(3) == 1


class TestLocalMoves:
    """Tests for parameter adjustment and random jumps."""

    def test_adjust_parameter_clamps(self, ranges, base):
        generator = ParameterGenerator(ranges)
        assert generator.adjust_parameter(base, "regression_risk", 0.05)["regression_risk"] == pytest.approx(0.25)
        assert generator.adjust_parameter(base, "regression_risk", 1.0)["regression_risk"] == 0.4
        assert generator.adjust_parameter(base, "regression_risk", -1.0)["regression_risk"] == 0.1

    def test_adjust_does_not_mutate(self, ranges, base):
        generator = ParameterGenerator(ranges)
        generator.adjust_parameter(base, "max_stealth", 0.1)
        assert base["max_stealth"] == 0.5

    def test_random_adjustment_never_jumps(self, ranges, base):
        generator = ParameterGenerator(ranges, rng=random.Random(1), jump_probability=0.0)
        assert generator.random_adjustment(base) == base

    def test_random_adjustment_always_jumps(self, ranges, base):
        generator = ParameterGenerator(ranges, rng=random.Random(1), jump_probability=1.0)
        for _ in range(50):
            adjusted = generator.random_adjustment(base)
            for name, parameter_range in ranges.items():
                assert parameter_range.min <= adjusted[name] <= parameter_range.max
            assert adjusted["dev_effort"] == 10.0

    def test_parameters_of(self, ranges, base):
        generator = ParameterGenerator(ranges)
        assert generator.parameters_of(base) == {
            "regression_risk": 0.2,
            "max_stealth": 0.5,
            "test_type_coefficient": 0.2,
        }
