"""
Localization Module: Fix classification, connection state, frames, distances.

Key classes:
- fix_classifier: classify / is_valid / fix_status / quality_description
- ConnectionStateTracker: Last report, fix status and position with change events
- CoordinateTransform: Working CRS <-> geographic CRS (pyproj)
- DistanceCalculator: Ellipsoidal distances and polyline lengths (pyproj.Geod)
"""

from .fix_classifier import (
    classify,
    best_fix_status,
    is_valid,
    fix_status,
    quality_description,
    component_value,
)
from .coordinate_transform import CoordinateTransform
from .distance_calculator import DistanceCalculator
from .connection_tracker import ConnectionStateTracker, ConnectionStatus

__all__ = [
    # Fix classification
    'classify',
    'best_fix_status',
    'is_valid',
    'fix_status',
    'quality_description',
    'component_value',
    # Frames and distances
    'CoordinateTransform',
    'DistanceCalculator',
    # Connection state
    'ConnectionStateTracker',
    'ConnectionStatus',
]
