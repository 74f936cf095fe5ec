"""
Candidate configuration generation.

Configurations are flat dictionaries keyed by ProjectConfig field names, so
a candidate can be reported as-is and validated only when it is evaluated.
"""

import random
from collections.abc import Iterator, Mapping
from typing import Any

from sprintsim.config.models import ParameterRange

FlatConfig = dict[str, Any]


class ParameterGenerator:
    """Produces grid candidates and local moves over the searched parameters.

    Usage:
        generator = ParameterGenerator(search_ranges, rng=random.Random(7))
        for config in generator.grid_configs(base, steps=3):
            ...
    """

    def __init__(
        self,
        ranges: Mapping[str, ParameterRange],
        rng: random.Random | None = None,
        jump_probability: float = 0.3,
    ) -> None:
        self._ranges = dict(ranges)
        self._rng = rng if rng is not None else random.Random()
        self._jump_probability = jump_probability

    @property
    def ranges(self) -> dict[str, ParameterRange]:
        return dict(self._ranges)

    @property
    def param_names(self) -> list[str]:
        return list(self._ranges)

    def grid_values(self, name: str, steps: int) -> list[float]:
        """Evenly spaced values from min to max; a single step yields min."""
        parameter_range = self._ranges[name]
        if steps <= 1:
            return [parameter_range.min]
        # clamp keeps float error from pushing the last value past max
        return [
            parameter_range.clamp(parameter_range.min + i / (steps - 1) * parameter_range.span)
            for i in range(steps)
        ]

    def grid_size(self, steps: int) -> int:
        return max(1, steps) ** len(self._ranges)

    def grid_configs(self, base: Mapping[str, Any], steps: int) -> Iterator[FlatConfig]:
        """Yield every grid combination layered over `base`.

        Works as a mixed-radix counter: the last parameter changes fastest,
        the first slowest. Exactly `steps ** len(param_names)` configs are
        produced.
        """
        names = self.param_names
        axes = [self.grid_values(name, steps) for name in names]
        indices = [0] * len(names)

        while True:
            config = dict(base)
            for position, name in enumerate(names):
                config[name] = axes[position][indices[position]]
            yield config

            position = len(names) - 1
            while position >= 0:
                indices[position] += 1
                if indices[position] < len(axes[position]):
                    break
                indices[position] = 0
                position -= 1
            if position < 0:
                return

    def random_adjustment(self, config: Mapping[str, Any]) -> FlatConfig:
        """Jump each parameter, with the jump probability, to a uniform value in its range."""
        adjusted = dict(config)
        for name, parameter_range in self._ranges.items():
            if self._rng.random() < self._jump_probability:
                adjusted[name] = parameter_range.min + self._rng.random() * parameter_range.span
        return adjusted

    def adjust_parameter(self, config: Mapping[str, Any], name: str, delta: float) -> FlatConfig:
        """Move one parameter by `delta`, clamped to its range."""
        adjusted = dict(config)
        adjusted[name] = self._ranges[name].clamp(config[name] + delta)
        return adjusted

    def parameters_of(self, config: Mapping[str, Any]) -> dict[str, float]:
        """Searched-parameter values of a flat config."""
        return {name: config[name] for name in self._ranges if name in config}
