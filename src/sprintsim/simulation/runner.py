"""
Simulation driver.

`run_simulation` plays one project from initialization to game end under a
single strategy. `run_batch_simulation` repeats that for each strategy and
aggregates win rate, defects found, sprint count and defect-finding rate.
"""

import asyncio
import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, Field

from sprintsim.config.models import ProjectConfig
from sprintsim.models.base import StrategyName
from sprintsim.simulation.generation import create_project
from sprintsim.simulation.project import GameEndResult, Project
from sprintsim.simulation.strategies import get_strategy

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of one simulated project.

    Attributes:
        strategy: Strategy that drove the run
        project: Final project state
        game_end: Game-end verdict
        sprint_count: Number of sprints created
        defects_found: Found defects affecting completed features
        defects_total: All defects affecting completed features
    """

    strategy: StrategyName
    project: Project
    game_end: GameEndResult
    sprint_count: int
    defects_found: int
    defects_total: int

    @property
    def is_won(self) -> bool:
        return bool(self.game_end.is_won)

    @property
    def defect_finding_rate(self) -> float:
        """Share of completed-feature defects that were found (0..1)."""
        if self.defects_total == 0:
            return 0.0
        return self.defects_found / self.defects_total


class StrategyResult(BaseModel):
    """Aggregated batch statistics for one strategy."""

    strategy: StrategyName = Field(..., description="Strategy name")
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    win_rate: float = Field(default=0.0, ge=0.0, le=100.0, description="Win percentage")
    avg_defects: float = Field(default=0.0, ge=0.0, description="Average defects found")
    avg_sprints: float = Field(default=0.0, ge=0.0, description="Average sprint count")
    avg_defect_finding_rate: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Average finding rate, percent"
    )

    @property
    def total_simulations(self) -> int:
        return self.wins + self.losses


def run_simulation(
    strategy: StrategyName | str,
    config: ProjectConfig | None = None,
    rng: random.Random | None = None,
) -> SimulationResult:
    """Run one project to its end.

    Each cycle executes the current sprint, opens and fills the next one,
    checks for game end and otherwise lets the strategy schedule testing.
    Reaching `max_sprints` ends the run as a loss.
    """
    strategy_name = StrategyName(strategy)
    strategy_fn = get_strategy(strategy_name)
    project = create_project(config, rng=rng)

    project.new_sprint().fill_dev_sprint()

    while True:
        current = project.require_current_sprint()
        current.done()

        upcoming = project.new_sprint()
        upcoming.fill_dev_sprint()

        game_end = project.evaluate_game_end(current, upcoming)
        if game_end.is_game_over:
            break
        if len(project.sprints) >= project.max_sprints:
            game_end = GameEndResult.aborted(len(project.sprints))
            logger.warning(
                "Run with strategy %s hit the sprint cap (%d)", strategy_name.value, project.max_sprints
            )
            break

        strategy_fn(project)

    found = 0
    total = 0
    for feature in project.done_features():
        defects = feature.defects()
        total += len(defects)
        found += sum(1 for d in defects if d.is_found)

    return SimulationResult(
        strategy=strategy_name,
        project=project,
        game_end=game_end,
        sprint_count=len(project.sprints),
        defects_found=found,
        defects_total=total,
    )


def aggregate_results(strategy: StrategyName, results: list[SimulationResult]) -> StrategyResult:
    """Summarize a batch of runs of one strategy."""
    count = len(results)
    if count == 0:
        return StrategyResult(strategy=strategy)

    wins = sum(1 for r in results if r.is_won)
    return StrategyResult(
        strategy=strategy,
        wins=wins,
        losses=count - wins,
        win_rate=wins / count * 100,
        avg_defects=sum(r.defects_found for r in results) / count,
        avg_sprints=sum(r.sprint_count for r in results) / count,
        avg_defect_finding_rate=sum(r.defect_finding_rate for r in results) / count * 100,
    )


async def run_batch_simulation(
    count: int,
    config: ProjectConfig | None = None,
    silent: bool = True,
    rng: random.Random | None = None,
    strategies: Iterable[StrategyName | str] | None = None,
) -> list[StrategyResult]:
    """Run `count` simulations per strategy and rank the strategies.

    Runs are sequential and yield to the event loop between runs. Every run
    gets its own generator seeded from `rng`, so a seeded batch is
    reproducible.

    Args:
        count: Runs per strategy (must be positive)
        config: Project configuration for every run
        silent: Suppress the per-strategy summary log lines
        rng: Batch random source
        strategies: Strategies to compare (default: all four)

    Returns:
        Per-strategy results, best win rate first, ties broken by finding rate

    Raises:
        ValueError: If count is not positive
    """
    if count <= 0:
        raise ValueError("count must be positive")

    rng = rng if rng is not None else random.Random()
    names = [StrategyName(s) for s in strategies] if strategies is not None else list(StrategyName)
    config = config or ProjectConfig()

    summaries = []
    for name in names:
        runs = []
        for _ in range(count):
            run_rng = random.Random(rng.getrandbits(64))
            runs.append(run_simulation(name, config, rng=run_rng))
            await asyncio.sleep(0)

        summary = aggregate_results(name, runs)
        summaries.append(summary)
        if not silent:
            logger.info(
                "%s: win rate %.1f%% (%d/%d), avg sprints %.1f, avg defects found %.1f, finding rate %.1f%%",
                name.value,
                summary.win_rate,
                summary.wins,
                count,
                summary.avg_sprints,
                summary.avg_defects,
                summary.avg_defect_finding_rate,
            )

    return sorted(
        summaries,
        key=lambda r: (r.win_rate, r.avg_defect_finding_rate),
        reverse=True,
    )
