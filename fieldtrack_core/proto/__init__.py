"""
Protocol Module: Decoded report schema and enumerations.

- Positioning reports as delivered by the external sentence decoder
- Fix status, fix type, quality indicator and constellation enums
- Geographic point type shared by the tracker and the accumulator
"""

from .positioning_report import (
    PositioningReport,
    GeoPoint,
    FixStatus,
    NmeaFixType,
    QualityIndicator,
    GnssConstellation,
    InformationComponent,
    STATUS_ACTIVE,
    STATUS_VOID,
)

__all__ = [
    'PositioningReport',
    'GeoPoint',
    'FixStatus',
    'NmeaFixType',
    'QualityIndicator',
    'GnssConstellation',
    'InformationComponent',
    'STATUS_ACTIVE',
    'STATUS_VOID',
]
