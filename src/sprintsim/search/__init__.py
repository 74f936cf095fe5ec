"""
sprintsim - Parameter Search

Grid and adaptive local search for project configurations under which the
testing strategies rank in a target order.
"""

from sprintsim.search.evaluation import (
    BaselineInfo,
    CandidateResult,
    ConfigEvaluation,
    FitnessCalculator,
    adjacent_differences,
    normalize_results,
    rank_strategies,
)
from sprintsim.search.optimizer import (
    BatchEvaluator,
    ConfigSearchOptimizer,
    SearchError,
    SearchOutcome,
)
from sprintsim.search.parameters import ParameterGenerator
from sprintsim.search.phases import (
    BasePhase,
    GridSearchPhase,
    LocalSearchPhase,
    SearchState,
)
from sprintsim.search.report import SearchReporter

__all__ = [
    # Evaluation
    "BaselineInfo",
    "CandidateResult",
    "ConfigEvaluation",
    "FitnessCalculator",
    "adjacent_differences",
    "normalize_results",
    "rank_strategies",
    # Generation
    "ParameterGenerator",
    # Phases
    "BasePhase",
    "GridSearchPhase",
    "LocalSearchPhase",
    "SearchState",
    # Optimizer
    "BatchEvaluator",
    "ConfigSearchOptimizer",
    "SearchError",
    "SearchOutcome",
    # Reporting
    "SearchReporter",
]
