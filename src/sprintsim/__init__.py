"""
sprintsim: Monte-Carlo comparison of scripted software testing strategies.

Simulates a small software project (features, defects, sprints) and measures
how four scripted testing strategies fare against it. A parameter search
tunes the simulation so that the strategies end up ranked in a desired order
with a statistically meaningful separation.

Key Features:
- Stochastic feature/defect lifecycle with regression clustering
- Capacity-constrained sprints with first-fit dev scheduling
- Probabilistic, category-aware defect detection
- Grid + adaptive local search over simulation parameters

Example:
    from sprintsim.config import ProjectConfig
    from sprintsim.simulation import run_batch_simulation

    results = await run_batch_simulation(100, ProjectConfig())
"""

from sprintsim.version import __version__

__all__ = [
    "__version__",
]
