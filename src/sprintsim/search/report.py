"""
Search report rendering with rich.
"""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sprintsim.search.evaluation import CandidateResult, WinRates
from sprintsim.search.optimizer import SearchOutcome


def format_percentage(value: float) -> str:
    if value == float("inf") or value == float("-inf"):
        return "N/A"
    return f"{value * 100:.1f}%"


def format_fitness(value: float) -> str:
    if value == float("-inf"):
        return "-inf"
    return f"{value:.2f}"


def _format_value(value: Any) -> str:
    return f"{value:.3f}" if isinstance(value, float) else str(value)


def _win_rate_line(win_rates: WinRates) -> str:
    return ", ".join(f"{s.value}: {format_percentage(rate)}" for s, rate in win_rates.items())


class SearchReporter:
    """Prints a SearchOutcome.

    Sections: baseline summary, top configurations by fitness (accepted and
    explored), and, when nothing was accepted, the parameter ranges of the
    best explored configurations.
    """

    def __init__(self, console: Console | None = None, top: int = 3, diagnostics: int = 5) -> None:
        self._console = console or Console()
        self._top = top
        self._diagnostics = diagnostics

    def report(self, outcome: SearchOutcome) -> None:
        self._report_summary(outcome)
        self._report_top(outcome)
        if not outcome.found:
            self._report_parameter_ranges(outcome)

    def _report_summary(self, outcome: SearchOutcome) -> None:
        baseline = outcome.baseline
        target = " > ".join(s.value for s in outcome.target_order)
        order = " > ".join(s.value for s in baseline.order)
        mark = "[green]✓[/green]" if baseline.has_correct_order else "[red]✗[/red]"

        self._console.print(
            Panel("[bold blue]Order-Based Config Search Results[/bold blue]", title="sprintsim search")
        )
        table = Table(show_header=False, box=None)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Target order", target)
        table.add_row("Minimum difference", format_percentage(outcome.min_difference))
        table.add_row("Baseline order", f"{order} {mark}")
        table.add_row(
            "Baseline to beat",
            f"{baseline.best_strategy.value} at {format_percentage(baseline.best_win_rate)}",
        )
        table.add_row("Baseline results", _win_rate_line(baseline.win_rates))
        table.add_row("Evaluations run", str(outcome.evaluations))
        table.add_row("Configs found", str(len(outcome.accepted)))
        self._console.print(table)
        self._console.print()

    def _status(self, candidate: CandidateResult, outcome: SearchOutcome) -> str:
        evaluation = candidate.evaluation
        if evaluation.is_failed:
            return f"[red]Failed: {evaluation.error}[/red]"
        if candidate.accepted:
            if outcome.baseline.has_correct_order:
                return "[green]Meets target order and beats baseline[/green]"
            return "[green]Meets target order (baseline had wrong order)[/green]"
        if evaluation.order_matches:
            return "[yellow]Explored (correct order)[/yellow]"
        return "[dim]Explored (wrong order)[/dim]"

    def _report_top(self, outcome: SearchOutcome) -> None:
        candidates = outcome.top_candidates(self._top)
        if not candidates:
            return

        self._console.print(
            f"[bold]Top {len(candidates)} Configurations (sorted by fitness)[/bold]"
            " * marks searched parameters"
        )
        for index, candidate in enumerate(candidates, start=1):
            evaluation = candidate.evaluation
            table = Table(title=f"{index}. Fitness {format_fitness(candidate.fitness)}", show_header=False)
            table.add_column("Field", style="cyan")
            table.add_column("Value", style="green")
            table.add_row("Status", self._status(candidate, outcome))
            table.add_row("Actual order", " > ".join(s.value for s in evaluation.actual_order) or "-")
            table.add_row("Order match", "yes" if evaluation.order_matches else "no")
            if evaluation.best_strategy is not None:
                table.add_row(
                    "Best strategy",
                    f"{evaluation.best_strategy.value} ({format_percentage(evaluation.best_win_rate)})",
                )
            table.add_row("Average win rate", format_percentage(evaluation.avg_win_rate))
            table.add_row("Min adjacent diff", format_percentage(evaluation.min_adjacent_diff))
            table.add_row("Total difference", format_percentage(evaluation.total_difference))
            table.add_row("Outperforms baseline", "yes" if evaluation.outperforms_baseline else "no")
            for strategy, rate in evaluation.win_rates.items():
                table.add_row(f"  {strategy.value}", format_percentage(rate))
            for name, value in candidate.config.items():
                marker = "*" if name in candidate.parameters else " "
                table.add_row(f"{marker} {name}", _format_value(value))
            self._console.print(table)
            self._console.print()

    def _report_parameter_ranges(self, outcome: SearchOutcome) -> None:
        self._console.print("[yellow]No configurations found meeting the target order.[/yellow]")
        self._console.print("Try adjusting the target order or minimum difference requirement.")

        ranges = outcome.parameter_ranges(self._diagnostics)
        if not ranges:
            return
        table = Table(title=f"Parameter ranges of the top {self._diagnostics} explored configs")
        table.add_column("Parameter", style="cyan")
        table.add_column("Min", style="green")
        table.add_column("Max", style="green")
        for name, (low, high) in ranges.items():
            table.add_row(name, f"{low:.3f}", f"{high:.3f}")
        self._console.print(table)
