"""
sprintsim - Simulation Engine

Project and sprint aggregates, feature/defect generation, the testing model,
the four testing strategies and the batch runner.
"""

from sprintsim.simulation.generation import (
    create_project,
    defect_count,
    generate_defects,
    generate_features,
    generate_regression_defects,
    initialize_project,
    weighted_choice,
)
from sprintsim.simulation.lifecycle import complete_task
from sprintsim.simulation.project import GameEndResult, Project, ProjectError
from sprintsim.simulation.runner import (
    SimulationResult,
    StrategyResult,
    aggregate_results,
    run_batch_simulation,
    run_simulation,
)
from sprintsim.simulation.sprint import Sprint, SprintCapacityError, SprintError
from sprintsim.simulation.strategies import (
    STRATEGIES,
    get_strategy,
    strategy_cycle,
    strategy_dumbcycle,
    strategy_focused,
    strategy_risk,
)
from sprintsim.simulation.testing import (
    TestingError,
    execute_test_task,
    exploratory_test,
    find_defects,
    functional_test,
    gather_knowledge,
    performance_test,
    risk_assessment,
    security_test,
    usability_test,
    validate_fix,
)

__all__ = [
    # Aggregates
    "Project",
    "ProjectError",
    "GameEndResult",
    "Sprint",
    "SprintError",
    "SprintCapacityError",
    # Generation and lifecycle
    "weighted_choice",
    "defect_count",
    "generate_features",
    "generate_defects",
    "generate_regression_defects",
    "initialize_project",
    "create_project",
    "complete_task",
    # Testing
    "TestingError",
    "gather_knowledge",
    "risk_assessment",
    "find_defects",
    "exploratory_test",
    "functional_test",
    "performance_test",
    "security_test",
    "usability_test",
    "validate_fix",
    "execute_test_task",
    # Strategies
    "STRATEGIES",
    "get_strategy",
    "strategy_focused",
    "strategy_risk",
    "strategy_cycle",
    "strategy_dumbcycle",
    # Runner
    "SimulationResult",
    "StrategyResult",
    "aggregate_results",
    "run_simulation",
    "run_batch_simulation",
]
