"""
Tests for search metrics and structured logging.
"""

import io
import json
import logging

import pytest

from sprintsim.utils import (
    MetricsCollector,
    PhaseMetrics,
    SearchMetrics,
    SearchPhase,
    StructuredLogger,
    get_structured_logger,
)


class TestPhaseMetrics:
    """Tests for PhaseMetrics."""

    def test_start_and_stop(self):
        metrics = PhaseMetrics(phase=SearchPhase.GRID)
        metrics.start()
        metrics.stop()

        assert metrics.start_time is not None
        assert metrics.end_time >= metrics.start_time
        assert metrics.duration_seconds >= 0.0
        assert metrics.success

    def test_stop_with_error(self):
        metrics = PhaseMetrics(phase=SearchPhase.LOCAL)
        metrics.stop(success=False, error="boom")
        assert not metrics.success
        assert metrics.error_message == "boom"
        # never started
        assert metrics.duration_seconds == 0.0

    def test_record_evaluation(self):
        metrics = PhaseMetrics(phase=SearchPhase.GRID)
        metrics.record_evaluation()
        metrics.record_evaluation(accepted=True)
        metrics.record_evaluation(failed=True)
        assert (metrics.evaluations, metrics.accepted, metrics.failed) == (3, 1, 1)

    def test_to_dict(self):
        metrics = PhaseMetrics(phase=SearchPhase.BASELINE, metadata={"runs": 5})
        data = metrics.to_dict()
        assert data["phase"] == "baseline"
        assert data["start_time"] is None
        assert data["metadata"] == {"runs": 5}


class TestSearchMetrics:
    """Tests for the run-level counters."""

    def test_defaults(self):
        metrics = SearchMetrics()
        assert metrics.acceptance_rate == 0.0
        assert metrics.failure_rate == 0.0
        assert metrics.best_fitness == float("-inf")

    def test_record(self):
        metrics = SearchMetrics()
        metrics.record(0.5, accepted=True, failed=False)
        metrics.record(float("-inf"), accepted=False, failed=True)
        metrics.record(0.2, accepted=False, failed=False)
        metrics.record(1.5, accepted=True, failed=False)

        assert metrics.evaluations == 4
        assert metrics.acceptance_rate == pytest.approx(0.5)
        assert metrics.failure_rate == pytest.approx(0.25)
        assert metrics.best_fitness == 1.5

    def test_serializes_rates(self):
        metrics = SearchMetrics(evaluations=4, accepted=1)
        assert metrics.model_dump()["acceptance_rate"] == pytest.approx(0.25)


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.mark.asyncio
    async def test_phase_context_success(self):
        collector = MetricsCollector()
        async with collector.phase_context(SearchPhase.GRID, metadata={"steps": 3}) as phase:
            collector.record_evaluation(SearchPhase.GRID, 0.4, accepted=True)
            collector.record_evaluation(SearchPhase.GRID, -1.0)

        assert phase.success
        assert phase.end_time is not None
        summary = collector.summary
        assert summary.evaluations == 2
        assert summary.accepted == 1
        assert summary.phases["grid"]["evaluations"] == 2
        assert summary.phases["grid"]["metadata"] == {"steps": 3}

    @pytest.mark.asyncio
    async def test_phase_context_failure(self):
        collector = MetricsCollector()
        with pytest.raises(RuntimeError):
            async with collector.phase_context(SearchPhase.BASELINE):
                raise RuntimeError("evaluator down")

        phase = collector.phase(SearchPhase.BASELINE)
        assert not phase.success
        assert phase.error_message == "evaluator down"

    def test_phase_is_reused(self):
        collector = MetricsCollector()
        assert collector.phase(SearchPhase.LOCAL) is collector.phase(SearchPhase.LOCAL)
        assert collector.summary.phases == {"local": collector.phase(SearchPhase.LOCAL).to_dict()}


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_json_format(self):
        logger = StructuredLogger("sprintsim.test.json")
        logger.set_context(run="abc")
        data = json.loads(logger.format_message("INFO", "Evaluated", fitness=0.5))

        assert data["message"] == "Evaluated"
        assert data["level"] == "INFO"
        assert data["logger"] == "sprintsim.test.json"
        assert data["run"] == "abc"
        assert data["fitness"] == 0.5

    def test_key_value_format(self):
        logger = StructuredLogger("sprintsim.test.kv", json_format=False)
        logger.set_context(phase="grid")
        assert logger.format_message("INFO", "Evaluated", accepted=True) == (
            "Evaluated phase=grid accepted=True"
        )
        logger.clear_context()
        assert logger.format_message("INFO", "Evaluated") == "Evaluated"

    def test_writes_to_output(self):
        stream = io.StringIO()
        logger = StructuredLogger(
            "sprintsim.test.stream", level=logging.INFO, output=stream, json_format=False
        )
        logger.info("Search started", evaluations=0)
        logger.debug("hidden")
        assert stream.getvalue().strip() == "Search started evaluations=0"

    def test_log_phase_end_failed_at_error_level(self, caplog):
        logger = get_structured_logger("sprintsim.test.phase")
        metrics = PhaseMetrics(phase=SearchPhase.GRID)
        metrics.stop(success=False, error="boom")

        with caplog.at_level(logging.INFO, logger="sprintsim.test.phase"):
            logger.log_phase_start(SearchPhase.GRID)
            logger.log_phase_end(metrics)

        levels = [record.levelno for record in caplog.records]
        assert levels == [logging.INFO, logging.ERROR]
        assert "Phase completed: grid" in caplog.records[-1].getMessage()
        assert "error=boom" in caplog.records[-1].getMessage()
        assert logger.name == "sprintsim.test.phase"
