"""
sprintsim Command Line Interface.

Commands:
    simulate  Batch-run the testing strategies and compare them
    search    Search for configurations that rank the strategies in a target order
    config    Display the resolved configuration
"""

import asyncio
import json
import logging
import random
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from sprintsim.config import (
    ConfigurationError,
    SearchConfig,
    SimulatorConfig,
    load_config,
    load_config_from_env,
)
from sprintsim.models.base import StrategyName
from sprintsim.version import __version__

console = Console()

STRATEGY_CHOICES = [s.value for s in StrategyName]


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


def configure_logging(cfg: SimulatorConfig, verbose: bool) -> None:
    """Set up stdlib logging from the config and the --verbose flag."""
    level = logging.DEBUG if verbose or cfg.debug else getattr(logging, cfg.logging.level.value)
    kwargs = {
        "level": level,
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "force": True,
    }
    if cfg.logging.json_format:
        kwargs["format"] = "%(message)s"
    if cfg.logging.file:
        kwargs["filename"] = cfg.logging.file
    logging.basicConfig(**kwargs)


def _load(config_path: str | None) -> SimulatorConfig:
    try:
        return load_config(config_path) if config_path else load_config_from_env()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _make_rng(seed: int | None) -> random.Random:
    return random.Random(seed) if seed is not None else random.Random()


@click.group()
@click.version_option(version=__version__, prog_name="sprintsim")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """sprintsim: Monte-Carlo comparison of software testing strategies.

    Simulates projects sprint by sprint under four scripted testing
    strategies and searches for parameters that rank them in a target order.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--runs", "-n", type=int, default=None, help="Simulations per strategy")
@click.option("--seed", type=int, default=None, help="Random seed for a reproducible batch")
@click.option(
    "--strategy",
    "-s",
    "strategies",
    type=click.Choice(STRATEGY_CHOICES),
    multiple=True,
    help="Strategy to run (repeatable, default: all)",
)
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def simulate(
    ctx: click.Context,
    config: str | None,
    runs: int | None,
    seed: int | None,
    strategies: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run a batch simulation for each strategy and rank them."""
    from sprintsim.simulation import run_batch_simulation

    cfg = _load(config)
    configure_logging(cfg, ctx.obj.get("verbose", False))

    count = runs if runs is not None else cfg.runs
    if count <= 0:
        console.print("[red]Error:[/red] --runs must be positive")
        sys.exit(1)
    rng = _make_rng(seed if seed is not None else cfg.seed)

    if not as_json:
        console.print(
            Panel(
                f"[bold blue]sprintsim v{__version__}[/bold blue]\n"
                f"{count} simulations per strategy",
                title="Batch Simulation",
            )
        )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
        disable=as_json,
    ) as progress:
        progress.add_task("Simulating...", total=None)
        results = run_async(
            run_batch_simulation(
                count,
                cfg.project,
                silent=not ctx.obj.get("verbose", False),
                rng=rng,
                strategies=strategies or None,
            )
        )

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return

    table = Table(title="Batch Simulation Results", show_header=True)
    table.add_column("Strategy", style="cyan")
    table.add_column("Win Rate", style="green", justify="right")
    table.add_column("Wins", justify="right")
    table.add_column("Losses", justify="right")
    table.add_column("Avg Sprints", justify="right")
    table.add_column("Avg Defects Found", justify="right")
    table.add_column("Finding Rate", justify="right")
    for result in results:
        table.add_row(
            result.strategy.value,
            f"{result.win_rate:.1f}%",
            str(result.wins),
            str(result.losses),
            f"{result.avg_sprints:.1f}",
            f"{result.avg_defects:.1f}",
            f"{result.avg_defect_finding_rate:.1f}%",
        )
    console.print(table)


@main.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--seed", type=int, default=None, help="Random seed for a reproducible search")
@click.option("--runs", "-n", type=int, default=None, help="Simulations per strategy per candidate")
@click.option("--max-iterations", type=int, default=None, help="Evaluation budget")
@click.option("--grid-steps", type=int, default=None, help="Grid values per parameter")
@click.option("--min-difference", type=float, default=None, help="Required adjacent win-rate gap (0-1)")
@click.option(
    "--target-order",
    type=str,
    default=None,
    help="Comma separated strategy ranking, best first (e.g. focused,risk,cycle,dumbcycle)",
)
@click.pass_context
def search(
    ctx: click.Context,
    config: str | None,
    seed: int | None,
    runs: int | None,
    max_iterations: int | None,
    grid_steps: int | None,
    min_difference: float | None,
    target_order: str | None,
) -> None:
    """Search for configurations that rank the strategies in a target order."""
    from pydantic import ValidationError

    from sprintsim.search import ConfigSearchOptimizer, SearchError, SearchReporter

    cfg = _load(config)
    configure_logging(cfg, ctx.obj.get("verbose", False))

    overrides = {
        "simulation_runs": runs,
        "max_iterations": max_iterations,
        "grid_steps": grid_steps,
        "min_difference": min_difference,
    }
    if target_order:
        overrides["target_order"] = [part.strip() for part in target_order.split(",") if part.strip()]
    overrides = {k: v for k, v in overrides.items() if v is not None}

    try:
        settings = SearchConfig.model_validate({**cfg.search.model_dump(), **overrides})
    except ValidationError as e:
        console.print(f"[red]Invalid search settings:[/red] {e}")
        sys.exit(1)

    optimizer = ConfigSearchOptimizer(settings, rng=_make_rng(seed if seed is not None else cfg.seed))
    console.print(
        f"[dim]Searching {len(settings.search_ranges)} parameters, "
        f"budget {settings.max_iterations} evaluations of {settings.simulation_runs} runs each...[/dim]"
    )

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as progress:
            progress.add_task("Searching...", total=None)
            outcome = run_async(optimizer.search())
    except SearchError as e:
        console.print(f"[red]Search error:[/red] {e}")
        sys.exit(1)

    SearchReporter(console).report(outcome)


@main.command("config")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
def show_config(config: str | None) -> None:
    """Display current configuration."""
    cfg = _load(config)

    console.print(Panel("[bold blue]sprintsim Configuration[/bold blue]", title="Configuration"))

    project_table = Table(title="Project", show_header=False, box=None)
    project_table.add_column("Setting", style="cyan")
    project_table.add_column("Value", style="green")
    for name, value in cfg.project.model_dump().items():
        project_table.add_row(name, str(value))
    console.print(project_table)
    console.print()

    search_cfg = cfg.search
    console.print("[bold]Search[/bold]")
    console.print(f"  Target order: {' > '.join(s.value for s in search_cfg.target_order)}")
    console.print(f"  Min difference: {search_cfg.min_difference}")
    console.print(f"  Max iterations: {search_cfg.max_iterations}")
    console.print(f"  Grid steps: {search_cfg.grid_steps}")
    console.print(f"  Simulation runs: {search_cfg.simulation_runs}")
    for name, parameter_range in search_cfg.search_ranges.items():
        console.print(
            f"  Range {name}: {parameter_range.min} .. {parameter_range.max} (step {parameter_range.step})"
        )
    console.print()

    console.print("[bold]Run[/bold]")
    console.print(f"  Runs: {cfg.runs}")
    console.print(f"  Seed: {cfg.seed if cfg.seed is not None else 'random'}")
    console.print(f"  Log level: {cfg.logging.level.value}")


if __name__ == "__main__":
    main()
