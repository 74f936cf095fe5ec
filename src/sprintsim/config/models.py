"""
Configuration Data Models.

Defines all configuration schemas using Pydantic for validation
and type safety.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sprintsim.models.base import StrategyName


class LogLevel(str, Enum):
    """Logging verbosity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ProjectConfig(BaseModel):
    """Parameters of one simulated project.

    Field names are snake_case; the camelCase names used by the original
    tooling (devEffort, maxStealth, ...) are accepted as aliases.

    Sizing bounds and feature_count are plain numbers so the search can move
    them continuously; generation floors them to whole values.

    Attributes:
        dev_effort: Dev effort budget per sprint
        test_effort: Test effort budget per sprint
        regression_risk: Probability a completed feature causes regressions
        min_feature_size: Lower bound for generated feature size
        max_feature_size: Upper bound for generated feature size
        min_feature_complexity: Lower bound for generated feature complexity
        max_feature_complexity: Upper bound for generated feature complexity
        feature_count: Number of features generated at start
        max_stealth: Upper bound for defect stealth
        test_effort_coefficient: Weight of effort-to-size ratio in detection
        test_type_coefficient: Scales detection of non-matching categories
        test_knowledge_coefficient: Weight of feature knowledge in detection
        max_sprints: Safety cap; a run reaching it ends as a loss
    """

    model_config = ConfigDict(populate_by_name=True)

    dev_effort: float = Field(
        default=10.0,
        ge=0.0,
        alias="devEffort",
        description="Dev effort budget per sprint",
    )
    test_effort: float = Field(
        default=5.0,
        ge=0.0,
        alias="testEffort",
        description="Test effort budget per sprint",
    )
    regression_risk: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        alias="regressionRisk",
        description="Probability of regression defects on feature completion",
    )
    min_feature_size: float = Field(
        default=1.0,
        ge=1.0,
        alias="minFeatureSize",
        description="Minimum generated feature size",
    )
    max_feature_size: float = Field(
        default=8.0,
        ge=1.0,
        alias="maxFeatureSize",
        description="Maximum generated feature size",
    )
    min_feature_complexity: float = Field(
        default=1.0,
        ge=1.0,
        alias="minFeatureComplexity",
        description="Minimum generated feature complexity",
    )
    max_feature_complexity: float = Field(
        default=6.0,
        ge=1.0,
        alias="maxFeatureComplexity",
        description="Maximum generated feature complexity",
    )
    feature_count: float = Field(
        default=10.0,
        ge=1.0,
        alias="featureCount",
        description="Number of features generated at project start",
    )
    max_stealth: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        alias="maxStealth",
        description="Upper bound for defect stealth",
    )
    test_effort_coefficient: float = Field(
        default=1.0,
        gt=0.0,
        alias="testEffortCoefficient",
        description="Effort-to-size weight in detection",
    )
    test_type_coefficient: float = Field(
        default=1.0,
        gt=0.0,
        alias="testTypeCoefficient",
        description="Scale for detecting defects of another category",
    )
    test_knowledge_coefficient: float = Field(
        default=1.0,
        gt=0.0,
        alias="testKnowledgeCoefficient",
        description="Knowledge weight in detection",
    )
    max_sprints: int = Field(
        default=200,
        ge=1,
        alias="maxSprints",
        description="Sprint cap per run (reaching it counts as a loss)",
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "ProjectConfig":
        """Validate that lower bounds do not exceed upper bounds."""
        if self.min_feature_size > self.max_feature_size:
            raise ValueError("min_feature_size cannot exceed max_feature_size")
        if self.min_feature_complexity > self.max_feature_complexity:
            raise ValueError("min_feature_complexity cannot exceed max_feature_complexity")
        return self

    @classmethod
    def from_flat(cls, data: dict[str, Any]) -> "ProjectConfig":
        """Build from a flat mapping using field names or camelCase keys."""
        return cls.model_validate(data)

    @classmethod
    def field_name(cls, name: str) -> str:
        """Resolve a field name or its camelCase alias to the field name.

        Raises:
            KeyError: If no field matches
        """
        if name in cls.model_fields:
            return name
        for field_name, info in cls.model_fields.items():
            if info.alias == name:
                return field_name
        raise KeyError(f"Unknown project parameter: {name}")


class ParameterRange(BaseModel):
    """Search range for one numeric project parameter."""

    min: float = Field(..., description="Lower bound")
    max: float = Field(..., description="Upper bound")
    step: float = Field(default=0.05, gt=0.0, description="Nominal step")

    @model_validator(mode="after")
    def validate_range(self) -> "ParameterRange":
        if self.min > self.max:
            raise ValueError("Range min cannot exceed max")
        return self

    @property
    def span(self) -> float:
        return self.max - self.min

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))


class FitnessWeights(BaseModel):
    """Constants of the search fitness function.

    Attributes:
        wrong_order: Penalty per mismatched position
        order_bonus: Bonus for correct order when the baseline was wrong
        baseline_bonus: Bonus for outperforming a correctly ordered baseline
        good_baseline_multiplier: Gap multiplier when a correct baseline is not beaten
        insufficient_gaps_multiplier: Gap multiplier for small gaps that still beat the baseline
        poor_performance_multiplier: Gap multiplier for small gaps that do not
    """

    wrong_order: float = Field(default=-10.0, le=0.0)
    order_bonus: float = Field(default=2.0, ge=0.0)
    baseline_bonus: float = Field(default=1.0, ge=0.0)
    good_baseline_multiplier: float = Field(default=0.3, ge=0.0)
    insufficient_gaps_multiplier: float = Field(default=0.6, ge=0.0)
    poor_performance_multiplier: float = Field(default=0.2, ge=0.0)


def _default_search_base() -> ProjectConfig:
    return ProjectConfig(
        dev_effort=10.0,
        test_effort=5.0,
        regression_risk=0.1,
        min_feature_size=3,
        max_feature_size=7,
        min_feature_complexity=3,
        max_feature_complexity=7,
        feature_count=5,
        max_stealth=0.6,
        test_effort_coefficient=0.3,
        test_type_coefficient=0.2,
        test_knowledge_coefficient=0.2,
    )


def _default_search_ranges() -> dict[str, ParameterRange]:
    return {
        "test_effort_coefficient": ParameterRange(min=0.1, max=0.3, step=0.05),
        "test_type_coefficient": ParameterRange(min=0.1, max=0.3, step=0.05),
        "test_knowledge_coefficient": ParameterRange(min=0.1, max=0.3, step=0.05),
        "regression_risk": ParameterRange(min=0.1, max=0.4, step=0.05),
        "max_stealth": ParameterRange(min=0.3, max=0.9, step=0.1),
    }


class SearchConfig(BaseModel):
    """Configuration of the parameter-space search.

    Attributes:
        target_order: Desired ranking of the strategies, best first
        min_difference: Required win-rate gap between adjacent strategies (0..1)
        max_iterations: Evaluation budget across both phases
        grid_steps: Values per parameter in the grid phase
        max_configs_found: Stop once this many acceptable configs are found
        initial_step_size: Local search starting step
        max_step_size: Local search step ceiling
        min_step_size: Local search step floor
        step_size_increase: Step multiplier after an improving round
        step_size_decrease: Step multiplier after a stagnant round
        random_jump_probability: Per-parameter probability of a random jump
        simulation_runs: Batch size per strategy for every evaluation
        fitness: Fitness function constants
        base_config: Baseline project configuration
        search_ranges: Parameter name -> range
    """

    target_order: list[StrategyName] = Field(
        default_factory=lambda: [
            StrategyName.FOCUSED,
            StrategyName.RISK,
            StrategyName.CYCLE,
            StrategyName.DUMBCYCLE,
        ],
        description="Desired strategy ranking, best first",
    )
    min_difference: float = Field(default=0.05, ge=0.0, le=1.0)
    max_iterations: int = Field(default=200, ge=1)
    grid_steps: int = Field(default=3, ge=1)
    max_configs_found: int = Field(default=3, ge=1)
    initial_step_size: float = Field(default=0.01, gt=0.0)
    max_step_size: float = Field(default=0.05, gt=0.0)
    min_step_size: float = Field(default=0.005, gt=0.0)
    step_size_increase: float = Field(default=1.1, ge=1.0)
    step_size_decrease: float = Field(default=0.8, gt=0.0, le=1.0)
    random_jump_probability: float = Field(default=0.3, ge=0.0, le=1.0)
    simulation_runs: int = Field(default=1000, ge=1)
    fitness: FitnessWeights = Field(default_factory=FitnessWeights)
    base_config: ProjectConfig = Field(default_factory=_default_search_base)
    search_ranges: dict[str, ParameterRange] = Field(default_factory=_default_search_ranges)

    @field_validator("target_order")
    @classmethod
    def validate_target_order(cls, v: list[StrategyName]) -> list[StrategyName]:
        """Validate that the order is a permutation of all strategies."""
        if sorted(s.value for s in v) != sorted(s.value for s in StrategyName):
            raise ValueError("target_order must list every strategy exactly once")
        return v

    @field_validator("search_ranges")
    @classmethod
    def validate_search_ranges(cls, v: dict[str, ParameterRange]) -> dict[str, ParameterRange]:
        """Normalize range keys to ProjectConfig field names."""
        normalized = {}
        for name, parameter_range in v.items():
            try:
                normalized[ProjectConfig.field_name(name)] = parameter_range
            except KeyError as e:
                raise ValueError(str(e)) from e
        return normalized

    @model_validator(mode="after")
    def validate_step_sizes(self) -> "SearchConfig":
        if not self.min_step_size <= self.max_step_size:
            raise ValueError("min_step_size cannot exceed max_step_size")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level for sprintsim loggers
        file: Optional log file
        json_format: Emit structured JSON lines
    """

    level: LogLevel = Field(default=LogLevel.WARNING)
    file: Optional[str] = Field(default=None)
    json_format: bool = Field(default=False)


class SimulatorConfig(BaseModel):
    """Root configuration.

    Attributes:
        project: Project parameters for `simulate`
        search: Search configuration for `search`
        logging: Logging configuration
        runs: Default batch size for `simulate`
        seed: Seed for reproducible runs (None = nondeterministic)
        debug: Enable debug mode
    """

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    runs: int = Field(default=100, ge=1, description="Default batch size")
    seed: Optional[int] = Field(default=None, description="Random seed")
    debug: bool = Field(default=False)

    def to_yaml_dict(self) -> dict[str, Any]:
        """Convert to YAML-friendly dictionary."""
        return self.model_dump(mode="json", exclude_none=True)
