"""
Pytest configuration and shared fixtures for field track tests.

This module provides reusable fixtures for building positioning reports,
driving the acquisition clock, and wiring a tracker to an accumulator.
"""

import sys
from pathlib import Path
from typing import Callable

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fieldtrack_core.proto import (
    PositioningReport,
    FixStatus,
    NmeaFixType,
    QualityIndicator,
    GnssConstellation,
    STATUS_ACTIVE,
)
from fieldtrack_core.metrics import reset_metrics


# One meter along a meridian near the equator, in degrees of latitude
DEG_PER_M_LAT = 1.0 / 110574.0


# =============================================================================
# Metrics
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test its own global metrics collector."""
    reset_metrics()
    yield
    reset_metrics()


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Monotonic clock controlled by the test."""
    return FakeClock()


# =============================================================================
# Report Fixtures
# =============================================================================


def make_report(lon: float = 0.0, lat: float = 0.0, elevation: float = 0.0,
                **overrides) -> PositioningReport:
    """
    Build a valid 3D GPS report at (lon, lat).

    Args:
        lon: Longitude (degrees)
        lat: Latitude (degrees)
        elevation: Elevation (meters)
        **overrides: Any other PositioningReport field

    Returns:
        PositioningReport that passes validity classification unless
        overridden otherwise.
    """
    fields = dict(
        status=STATUS_ACTIVE,
        fix_type=NmeaFixType.FIX_3D,
        quality_indicator=QualityIndicator.GPS,
        quality=1,
        constellation_fix_status={GnssConstellation.GPS: FixStatus.FIX_3D},
        longitude=lon,
        latitude=lat,
        elevation=elevation,
    )
    fields.update(overrides)
    return PositioningReport(**fields)


@pytest.fixture
def report_factory() -> Callable[..., PositioningReport]:
    """Factory for valid reports; see make_report()."""
    return make_report


@pytest.fixture
def valid_report() -> PositioningReport:
    """Valid 3D fix near Hong Kong."""
    return make_report(114.17, 22.29, 5.0)


@pytest.fixture
def invalid_report() -> PositioningReport:
    """Report with a void status and no fix."""
    return make_report(
        114.17, 22.29,
        status="V",
        fix_type=NmeaFixType.BAD,
        quality_indicator=QualityIndicator.INVALID,
        quality=0,
        constellation_fix_status={GnssConstellation.GPS: FixStatus.NO_FIX},
    )
