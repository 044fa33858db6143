"""
Domain Module: Track digitizing logic.

Implements:
- Acquisition policy (time / distance OR-gate)
- Immutable settings snapshot (frames, ellipsoid, timestamps)
- Track accumulation with ellipsoidal length bookkeeping
"""

from .track_settings import (
    AcquisitionPolicy,
    TimestampSettings,
    TrackSettings,
)
from .track_accumulator import (
    TrackAccumulator,
    TrackFeature,
    TrackVertex,
)

__all__ = [
    'AcquisitionPolicy',
    'TimestampSettings',
    'TrackSettings',
    'TrackAccumulator',
    'TrackFeature',
    'TrackVertex',
]
