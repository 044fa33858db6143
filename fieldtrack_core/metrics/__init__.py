"""
Metrics Module: process-wide track diagnostics.

Every component fetches the shared collector with get_metrics() and counts
what it did with each report:

    from fieldtrack_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('reports_in')
    metrics.reject('invalid_fix')            # report unusable
    metrics.hold('acquisition_distance')     # valid, but not a new vertex
"""

from .counters import (
    MetricsCollector,
    MetricsSnapshot,
    REJECTION_REASONS,
    HOLD_REASONS,
)

_collector = None


def get_metrics() -> MetricsCollector:
    """Shared collector, created on first use."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector


def reset_metrics() -> MetricsCollector:
    """Replace the shared collector with an empty one and return it."""
    global _collector
    _collector = MetricsCollector()
    return _collector


__all__ = [
    'MetricsCollector',
    'MetricsSnapshot',
    'REJECTION_REASONS',
    'HOLD_REASONS',
    'get_metrics',
    'reset_metrics',
]
