"""
Track diagnostics.

Two kinds of "no" are kept apart:
- rejections: a report (or a vertex request) could not be used at all
  (invalid fix, not connected, malformed record, ...)
- holds: a valid position the acquisition policy kept out of the track
  because not enough time or distance had passed

Plus plain counters (reports in, vertices added, fix changes) and sample
histograms (segment length, time between vertices). All updates take one
lock, the collector is shared process-wide.
"""

import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


REJECTION_REASONS = {
    'invalid_fix': 'Report failed validity classification',
    'not_connected': 'Vertex requested while transport not connected',
    'no_report': 'Vertex requested with no report to use',
    'reentrant_update': 'Report delivered from a listener while updating',
    'malformed_record': 'Replay record could not be decoded',
}

HOLD_REASONS = {
    'acquisition_interval': 'Neither time nor distance threshold reached',
    'acquisition_distance': 'Distance threshold not reached (time gate unused)',
}

COUNTERS = (
    'reports_in',
    'reports_valid',
    'position_changes',
    'fix_status_changes',
    'vertices_added',
    'track_resets',
)


def _with_defaults(names, counts: Counter) -> Dict[str, int]:
    """Known names at zero, plus whatever else was counted."""
    merged = dict.fromkeys(names, 0)
    merged.update(counts)
    return merged


@dataclass
class MetricsSnapshot:
    """Copy of the collector state."""

    counters: Dict[str, int]
    rejections: Dict[str, int]
    holds: Dict[str, int]
    histograms: Dict[str, List[float]] = field(default_factory=dict)

    @property
    def total_rejected(self) -> int:
        return sum(self.rejections.values())

    @property
    def total_held(self) -> int:
        return sum(self.holds.values())


class MetricsCollector:
    """
    Counters, rejection/hold reasons and histograms for one process.

    Usage:
        metrics = MetricsCollector()
        metrics.increment('reports_in')
        metrics.reject('invalid_fix')
        metrics.hold('acquisition_interval')
        metrics.record_histogram('segment_length_m', 4.2)
    """

    def __init__(self, max_samples: int = 5000):
        """
        Args:
            max_samples: Samples kept per histogram; oldest are discarded
        """
        self.max_samples = max_samples
        self._lock = threading.Lock()
        self._started = time.monotonic()
        self._counters: Counter = Counter()
        self._rejections: Counter = Counter()
        self._holds: Counter = Counter()
        self._histograms: Dict[str, Deque[float]] = {}

    def increment(self, name: str, value: int = 1):
        with self._lock:
            self._counters[name] += value

    def reject(self, reason: str):
        """Count a report or vertex request that could not be used."""
        if reason not in REJECTION_REASONS:
            logger.warning(f"Unknown rejection reason '{reason}'")
        with self._lock:
            self._rejections[reason] += 1

    def hold(self, reason: str):
        """Count a valid position kept out of the track by the acquisition policy."""
        if reason not in HOLD_REASONS:
            logger.warning(f"Unknown hold reason '{reason}'")
        with self._lock:
            self._holds[reason] += 1

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def rejection_count(self, reason: str) -> int:
        with self._lock:
            return self._rejections[reason]

    def hold_count(self, reason: str) -> int:
        with self._lock:
            return self._holds[reason]

    def record_histogram(self, name: str, value: float):
        with self._lock:
            samples = self._histograms.get(name)
            if samples is None:
                samples = self._histograms[name] = deque(maxlen=self.max_samples)
            samples.append(float(value))

    def get_histogram_stats(self, name: str) -> Optional[Dict[str, float]]:
        """
        Summary of one histogram.

        Returns:
            Dict with count, min, max, mean, median and p95, or None if no
            samples were recorded
        """
        with self._lock:
            samples = np.array(self._histograms.get(name, ()), dtype=float)

        if samples.size == 0:
            return None

        return {
            'count': int(samples.size),
            'min': float(samples.min()),
            'max': float(samples.max()),
            'mean': float(samples.mean()),
            'median': float(np.median(samples)),
            'p95': float(np.percentile(samples, 95)),
        }

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                counters=_with_defaults(COUNTERS, self._counters),
                rejections=_with_defaults(REJECTION_REASONS, self._rejections),
                holds=_with_defaults(HOLD_REASONS, self._holds),
                histograms={name: list(samples) for name, samples in self._histograms.items()},
            )

    def print_summary(self):
        """Print counters, reasons and histogram summaries."""
        snapshot = self.snapshot()
        elapsed = time.monotonic() - self._started

        print("\n" + "=" * 60)
        print(f"  Track metrics ({elapsed:.1f}s)")
        print("=" * 60)
        for name, value in sorted(snapshot.counters.items()):
            print(f"  {name:28s} {value:8d}")

        for title, reasons, total in (
            ("Rejected", snapshot.rejections, snapshot.total_rejected),
            ("Held back", snapshot.holds, snapshot.total_held),
        ):
            if total:
                print(f"\n{title} ({total}):")
                for reason, count in sorted(reasons.items()):
                    if count:
                        print(f"  {reason:28s} {count:8d}")

        for name in sorted(snapshot.histograms):
            stats = self.get_histogram_stats(name)
            print(f"\n{name}: n={stats['count']} mean={stats['mean']:.3f} "
                  f"p95={stats['p95']:.3f} max={stats['max']:.3f}")
        print("=" * 60)
