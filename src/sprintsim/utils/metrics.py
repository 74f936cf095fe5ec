"""
Search Metrics and Structured Logging.

Contents:
    - PhaseMetrics: Duration and evaluation counts of one search phase
    - SearchMetrics: Aggregated counters for a whole optimizer run
    - StructuredLogger: JSON or key=value logging with context fields
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TextIO

from pydantic import BaseModel, Field, computed_field


class SearchPhase(str, Enum):
    """Phases of a parameter search."""

    BASELINE = "baseline"
    GRID = "grid"
    LOCAL = "local"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PhaseMetrics:
    """Metrics for a single search phase.

    Attributes:
        phase: Phase identifier
        start_time: When phase started
        end_time: When phase ended
        duration_seconds: Duration in seconds
        evaluations: Candidate configurations evaluated
        accepted: Candidates that met the acceptance criteria
        failed: Candidates whose evaluation raised
        success: Whether phase completed successfully
        error_message: Error message if failed
        metadata: Additional phase-specific data
    """

    phase: SearchPhase
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    evaluations: int = 0
    accepted: int = 0
    failed: int = 0
    success: bool = True
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def start(self) -> None:
        self.start_time = _now()

    def stop(self, success: bool = True, error: str | None = None) -> None:
        """Close the phase; the duration stays 0 if it was never started."""
        self.end_time = _now()
        self.success, self.error_message = success, error
        if self.start_time is not None:
            self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def record_evaluation(self, accepted: bool = False, failed: bool = False) -> None:
        self.evaluations += 1
        if accepted:
            self.accepted += 1
        if failed:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly snapshot: enum as its value, timestamps as ISO strings."""
        data = asdict(self)
        data["phase"] = self.phase.value
        for key in ("start_time", "end_time"):
            data[key] = data[key].isoformat() if data[key] else None
        return data


class SearchMetrics(BaseModel):
    """Counters for one optimizer run.

    Attributes:
        evaluations: Candidate evaluations across all phases
        accepted: Accepted candidates
        failed: Failed candidate evaluations
        best_fitness: Highest fitness observed
        phases: Per-phase metrics, keyed by phase name
    """

    evaluations: int = Field(default=0, ge=0)
    accepted: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    best_fitness: float = Field(default=float("-inf"))
    phases: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @computed_field
    @property
    def acceptance_rate(self) -> float:
        """Share of evaluations that were accepted."""
        if self.evaluations == 0:
            return 0.0
        return self.accepted / self.evaluations

    @computed_field
    @property
    def failure_rate(self) -> float:
        """Share of evaluations that failed."""
        if self.evaluations == 0:
            return 0.0
        return self.failed / self.evaluations

    def record(self, fitness: float, accepted: bool, failed: bool) -> None:
        self.evaluations += 1
        if accepted:
            self.accepted += 1
        if failed:
            self.failed += 1
        if fitness > self.best_fitness:
            self.best_fitness = fitness


class MetricsCollector:
    """Tracks phase metrics for one optimizer run.

    Usage:
        collector = MetricsCollector()
        async with collector.phase_context(SearchPhase.GRID) as phase:
            phase.record_evaluation(accepted=True)
        summary = collector.summary
    """

    def __init__(self) -> None:
        self._phases: dict[SearchPhase, PhaseMetrics] = {}
        self._summary = SearchMetrics()

    @property
    def summary(self) -> SearchMetrics:
        self._summary.phases = {p.value: m.to_dict() for p, m in self._phases.items()}
        return self._summary

    def phase(self, phase: SearchPhase) -> PhaseMetrics:
        if phase not in self._phases:
            self._phases[phase] = PhaseMetrics(phase=phase)
        return self._phases[phase]

    def record_evaluation(
        self, phase: SearchPhase, fitness: float, accepted: bool = False, failed: bool = False
    ) -> None:
        self.phase(phase).record_evaluation(accepted=accepted, failed=failed)
        self._summary.record(fitness, accepted, failed)

    @asynccontextmanager
    async def phase_context(self, phase: SearchPhase, metadata: dict[str, Any] | None = None):
        """Async context manager for phase tracking.

        Yields:
            The phase's PhaseMetrics
        """
        metrics = self.phase(phase)
        metrics.start()
        try:
            yield metrics
            metrics.stop(success=True)
        except Exception as e:
            metrics.stop(success=False, error=str(e))
            raise
        finally:
            if metadata:
                metrics.metadata.update(metadata)


class StructuredLogger:
    """Structured logger.

    Emits either one JSON object per line or `message key=value ...`.

    Usage:
        logger = StructuredLogger("sprintsim.search")
        logger.info("Candidate evaluated", fitness=0.42, accepted=False)
    """

    def __init__(
        self,
        name: str,
        level: int | None = None,
        output: TextIO | None = None,
        json_format: bool = True,
    ) -> None:
        """`output` attaches a dedicated stream handler; without it records go
        through the handlers configured for the logging hierarchy. `level`
        None keeps the logger's configured level.
        """
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level)
        self._json_format = json_format
        self._context: dict[str, Any] = {}

        if output is not None and not self._logger.handlers:
            handler = logging.StreamHandler(output)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    @property
    def name(self) -> str:
        return self._logger.name

    def set_context(self, **kwargs: Any) -> None:
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context.clear()

    def format_message(self, level: str, message: str, **kwargs: Any) -> str:
        """Render a message with context and extra fields."""
        if self._json_format:
            record = {
                "timestamp": _now().isoformat(),
                "level": level,
                "message": message,
                "logger": self._logger.name,
            }
            record.update(self._context)
            record.update(kwargs)
            return json.dumps(record, default=str)

        fields = {**self._context, **kwargs}
        extra = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{message} {extra}".strip()

    def debug(self, message: str, **kwargs: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self.format_message("DEBUG", message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self.format_message("INFO", message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self.format_message("WARNING", message, **kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self.format_message("ERROR", message, **kwargs))

    def log_phase_start(self, phase: SearchPhase, **kwargs: Any) -> None:
        self.info(f"Phase started: {phase.value}", phase=phase.value, event="phase_start", **kwargs)

    def log_phase_end(self, metrics: PhaseMetrics) -> None:
        """Log the end of a phase at info level, or error level if it failed."""
        level = "info" if metrics.success else "error"
        getattr(self, level)(
            f"Phase completed: {metrics.phase.value}",
            phase=metrics.phase.value,
            duration_seconds=round(metrics.duration_seconds, 3),
            evaluations=metrics.evaluations,
            accepted=metrics.accepted,
            failed=metrics.failed,
            error=metrics.error_message,
            event="phase_end",
        )


def get_structured_logger(name: str, json_format: bool = False) -> StructuredLogger:
    """Plain key=value logger unless `json_format` is set."""
    return StructuredLogger(name, json_format=json_format)
