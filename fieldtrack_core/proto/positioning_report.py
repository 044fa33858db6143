"""
Positioning Report Schema.

Defines the decoded positioning report consumed by the fix classifier and
the track accumulator, together with the fix/quality enumerations used to
describe it. Reports are produced by an external sentence decoder; this
module never parses wire bytes.

Reference: NMEA 0183 RMC/GGA/GSA field semantics
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Dict, Optional


# Legacy RMC status characters
STATUS_ACTIVE = "A"
STATUS_VOID = "V"


class FixStatus(IntEnum):
    """Overall or per-constellation fix status, ordered by quality."""

    NO_DATA = 0   # Nothing received yet
    NO_FIX = 1    # Receiver reports no usable fix
    FIX_2D = 2    # Horizontal fix only
    FIX_3D = 3    # Horizontal + vertical fix


class NmeaFixType(IntEnum):
    """GSA fix type field."""

    BAD = 1       # Default when GSA was never received
    FIX_2D = 2
    FIX_3D = 3


class QualityIndicator(IntEnum):
    """GGA quality indicator (correction technology)."""

    UNKNOWN = -1
    INVALID = 0
    GPS = 1          # Autonomous
    DGPS = 2         # Differential GPS
    PPS = 3          # Precise Positioning Service
    RTK = 4          # Fixed RTK
    FLOAT_RTK = 5    # Float RTK
    ESTIMATED = 6    # Dead reckoning
    MANUAL = 7       # Manual input
    SIMULATION = 8   # Simulator

    @classmethod
    def from_code(cls, code: int) -> "QualityIndicator":
        """Map a raw GGA quality code, falling back to UNKNOWN."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class GnssConstellation(IntEnum):
    """
    Satellite navigation systems.

    Ordinal order is the tie-break order used when several constellations
    report the same best fix status.
    """

    UNKNOWN = 0
    GPS = 1
    GLONASS = 2
    GALILEO = 3
    BEIDOU = 4
    QZSS = 5
    NAVIC = 6
    SBAS = 7


class InformationComponent(IntEnum):
    """Individual values that can be read off a report or a track."""

    LOCATION = 0
    ALTITUDE = 1
    GROUND_SPEED = 2
    BEARING = 3
    TOTAL_TRACK_LENGTH = 4
    TRACK_DISTANCE_FROM_START = 5


@dataclass(frozen=True)
class GeoPoint:
    """
    3D point in the geographic frame.

    Attributes:
        lon: Longitude (degrees)
        lat: Latitude (degrees)
        elevation: Elevation (meters)
    """

    lon: float
    lat: float
    elevation: float = 0.0

    def as_tuple(self):
        return (self.lon, self.lat, self.elevation)


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown {enum_cls.__name__} name: {value!r}")
    return enum_cls(int(value))


@dataclass
class PositioningReport:
    """
    One decoded positioning report from a GNSS receiver.

    Attributes:
        status: Legacy RMC status ("A" active, "V" void, "" not reported)
        fix_type: GSA fix type (BAD when never received)
        quality_indicator: GGA quality indicator
        quality: Raw GGA quality code, kept for diagnostics
        constellation_fix_status: Per-constellation fix status
        longitude: Longitude (degrees)
        latitude: Latitude (degrees)
        elevation: Elevation above MSL (meters)
        speed: Ground speed (km/h)
        direction: Bearing over ground (degrees), None when undefined
        hdop, vdop, pdop: Dilution of precision values
        satellites_used: Number of satellites used in the solution
        utc_time: Receiver UTC date/time, if decoded

    Notes:
        - Default construction gives the neutral "no data" report
        - A NaN bearing is normalised to None
    """

    status: str = ""
    fix_type: NmeaFixType = NmeaFixType.BAD
    quality_indicator: QualityIndicator = QualityIndicator.INVALID
    quality: int = -1
    constellation_fix_status: Dict[GnssConstellation, FixStatus] = field(default_factory=dict)
    longitude: float = 0.0
    latitude: float = 0.0
    elevation: float = 0.0
    speed: float = 0.0
    direction: Optional[float] = None

    # Optional precision fields
    hdop: float = 0.0
    vdop: float = 0.0
    pdop: float = 0.0
    satellites_used: int = 0
    utc_time: Optional[datetime] = None

    def __post_init__(self):
        """Normalise undefined bearing."""
        if self.direction is not None and math.isnan(self.direction):
            self.direction = None

    @classmethod
    def no_data(cls) -> "PositioningReport":
        """Neutral report used before the first report and after a reset."""
        return cls()

    @property
    def has_coordinates_in_range(self) -> bool:
        """True if longitude/latitude lie within their geographic bounds."""
        return -180.0 <= self.longitude <= 180.0 and -90.0 <= self.latitude <= 90.0

    @property
    def position(self) -> GeoPoint:
        """Reported position as a geographic point."""
        return GeoPoint(self.longitude, self.latitude, self.elevation)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'status': self.status,
            'fix_type': self.fix_type.name,
            'quality_indicator': self.quality_indicator.name,
            'quality': self.quality,
            'constellation_fix_status': {
                constellation.name: status.name
                for constellation, status in self.constellation_fix_status.items()
            },
            'longitude': self.longitude,
            'latitude': self.latitude,
            'elevation': self.elevation,
            'speed': self.speed,
            'direction': self.direction,
            'hdop': self.hdop,
            'vdop': self.vdop,
            'pdop': self.pdop,
            'satellites_used': self.satellites_used,
            'utc_time': self.utc_time.isoformat() if self.utc_time else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PositioningReport":
        """
        Build a report from a dictionary (e.g. one JSON-lines replay record).

        Enum fields accept either names or integer codes. Unknown keys are
        ignored.

        Raises:
            ValueError: If an enum name/code or timestamp is malformed
        """
        constellations = {
            _parse_enum(GnssConstellation, key): _parse_enum(FixStatus, value)
            for key, value in (data.get('constellation_fix_status') or {}).items()
        }

        quality = int(data.get('quality', -1))
        raw_indicator = data.get('quality_indicator')
        if isinstance(raw_indicator, (str, QualityIndicator)):
            indicator = _parse_enum(QualityIndicator, raw_indicator)
        elif raw_indicator is not None:
            # Raw GGA code; codes outside the table map to UNKNOWN
            code = int(raw_indicator)
            indicator = QualityIndicator.from_code(code)
            if 'quality' not in data:
                quality = code
        elif 'quality' in data:
            indicator = QualityIndicator.from_code(quality)
        else:
            indicator = QualityIndicator.INVALID

        utc_time = data.get('utc_time')
        if isinstance(utc_time, str):
            utc_time = datetime.fromisoformat(utc_time)

        direction = data.get('direction')

        return cls(
            status=data.get('status', ""),
            fix_type=_parse_enum(NmeaFixType, data.get('fix_type', NmeaFixType.BAD)),
            quality_indicator=indicator,
            quality=quality,
            constellation_fix_status=constellations,
            longitude=float(data.get('longitude', 0.0)),
            latitude=float(data.get('latitude', 0.0)),
            elevation=float(data.get('elevation', 0.0)),
            speed=float(data.get('speed', 0.0)),
            direction=float(direction) if direction is not None else None,
            hdop=float(data.get('hdop', 0.0)),
            vdop=float(data.get('vdop', 0.0)),
            pdop=float(data.get('pdop', 0.0)),
            satellites_used=int(data.get('satellites_used', 0)),
            utc_time=utc_time,
        )
