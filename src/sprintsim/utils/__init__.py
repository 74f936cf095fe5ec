"""
sprintsim - Utilities

Metrics collection and structured logging for the search optimizer.
"""

from sprintsim.utils.metrics import (
    MetricsCollector,
    PhaseMetrics,
    SearchMetrics,
    SearchPhase,
    StructuredLogger,
    get_structured_logger,
)

__all__ = [
    "MetricsCollector",
    "PhaseMetrics",
    "SearchMetrics",
    "SearchPhase",
    "StructuredLogger",
    "get_structured_logger",
]
