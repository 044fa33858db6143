"""
Track settings snapshot.

Immutable configuration read by the track accumulator: acquisition policy,
coordinate frames, ellipsoid and vertex timestamp options. A settings change
replaces the whole snapshot; fields are never mutated one by one, so a
report is always evaluated against one consistent set of thresholds.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


# Time specs for vertex timestamps
TIME_SPEC_UTC = "utc"
TIME_SPEC_LOCAL = "local"
TIME_SPEC_OFFSET = "offset"
TIME_SPEC_TIMEZONE = "timezone"

TIME_SPECS = (TIME_SPEC_UTC, TIME_SPEC_LOCAL, TIME_SPEC_OFFSET, TIME_SPEC_TIMEZONE)


@dataclass(frozen=True)
class AcquisitionPolicy:
    """
    Rule deciding whether a valid position becomes a new track vertex.

    Attributes:
        enabled: When False every valid report is accepted
        interval_s: Minimum time since the last accepted vertex (0 = unused)
        distance_m: Minimum distance from the last accepted vertex (0 = unused)

    Notes:
        - The two thresholds are OR-gated: either one being reached accepts
        - With both thresholds unused every valid report is accepted
    """

    enabled: bool = True
    interval_s: float = 0.0
    distance_m: float = 0.0

    def __post_init__(self):
        """Validate policy."""
        if self.interval_s < 0:
            raise ValueError(f"Acquisition interval cannot be negative: {self.interval_s}")
        if self.distance_m < 0:
            raise ValueError(f"Distance threshold cannot be negative: {self.distance_m}")

    @property
    def is_gating(self) -> bool:
        """True if the policy can reject a report at all."""
        return self.enabled and (self.interval_s > 0 or self.distance_m > 0)

    def evaluate(self, elapsed_s: float, distance_m: float) -> Tuple[bool, Optional[str]]:
        """
        Evaluate the policy against movement since the last accepted vertex.

        Args:
            elapsed_s: Seconds since the last accepted vertex
            distance_m: Meters from the last accepted vertex

        Returns:
            (accepted, rejection_reason); reason is None when accepted
        """
        if not self.is_gating:
            return True, None

        if self.interval_s > 0 and elapsed_s >= self.interval_s:
            return True, None
        if self.distance_m > 0 and distance_m >= self.distance_m:
            return True, None

        if self.interval_s > 0:
            return False, 'acquisition_interval'
        return False, 'acquisition_distance'


@dataclass(frozen=True)
class TimestampSettings:
    """
    How receiver UTC time is turned into a vertex timestamp.

    Attributes:
        apply_leap_seconds: Add leap_seconds to the receiver time
        leap_seconds: Correction in seconds (GPS-UTC offset when needed)
        time_spec: "utc", "local", "offset" or "timezone"
        offset_from_utc_s: Fixed offset used with time_spec "offset"
        time_zone: IANA zone name used with time_spec "timezone"
    """

    apply_leap_seconds: bool = False
    leap_seconds: int = 18
    time_spec: str = TIME_SPEC_UTC
    offset_from_utc_s: int = 0
    time_zone: str = "UTC"

    def __post_init__(self):
        """Validate timestamp options."""
        if self.time_spec not in TIME_SPECS:
            raise ValueError(f"Unknown time spec {self.time_spec!r}, expected one of {TIME_SPECS}")
        if self.time_spec == TIME_SPEC_TIMEZONE:
            # Raises ZoneInfoNotFoundError (a KeyError) for unknown zones
            ZoneInfo(self.time_zone)

    def convert(self, utc_time: Optional[datetime]) -> Optional[datetime]:
        """
        Convert a receiver time to a vertex timestamp.

        Naive datetimes are taken to be UTC.
        """
        if utc_time is None:
            return None

        if utc_time.tzinfo is None:
            utc_time = utc_time.replace(tzinfo=timezone.utc)

        if self.apply_leap_seconds:
            utc_time = utc_time + timedelta(seconds=self.leap_seconds)

        if self.time_spec == TIME_SPEC_LOCAL:
            return utc_time.astimezone()
        if self.time_spec == TIME_SPEC_OFFSET:
            return utc_time.astimezone(timezone(timedelta(seconds=self.offset_from_utc_s)))
        if self.time_spec == TIME_SPEC_TIMEZONE:
            return utc_time.astimezone(ZoneInfo(self.time_zone))
        return utc_time.astimezone(timezone.utc)


@dataclass(frozen=True)
class TrackSettings:
    """
    Complete configuration snapshot for track accumulation.

    Attributes:
        acquisition: Vertex acquisition policy
        receiver_crs: CRS receiver positions are reported in
        working_crs: CRS of the live map the track is presented in
        geographic_crs: Geographic CRS vertices are stored in
        ellipsoid: Ellipsoid used for length calculations
        auto_add_vertices: Add a vertex for every report when attached to a tracker
        timestamps: Vertex timestamp options
    """

    acquisition: AcquisitionPolicy = field(default_factory=AcquisitionPolicy)
    receiver_crs: str = "EPSG:4326"
    working_crs: str = "EPSG:4326"
    geographic_crs: str = "EPSG:4326"
    ellipsoid: str = "WGS84"
    auto_add_vertices: bool = True
    timestamps: TimestampSettings = field(default_factory=TimestampSettings)

    def with_acquisition(self, **changes) -> "TrackSettings":
        """Return a new snapshot with acquisition fields replaced."""
        return replace(self, acquisition=replace(self.acquisition, **changes))

    @classmethod
    def from_config(cls, acquisition_config: dict, crs_config: dict,
                    timestamp_config: Optional[dict] = None) -> "TrackSettings":
        """
        Build a snapshot from the dict-style settings in config.py.

        Args:
            acquisition_config: ACQUISITION_CONFIG-style dict
            crs_config: CRS_CONFIG-style dict
            timestamp_config: TIMESTAMP_CONFIG-style dict (optional)
        """
        acquisition = AcquisitionPolicy(
            enabled=acquisition_config.get("enabled", True),
            interval_s=float(acquisition_config.get("interval_s", 0.0)),
            distance_m=float(acquisition_config.get("distance_m", 0.0)),
        )
        timestamps = TimestampSettings(**(timestamp_config or {}))

        return cls(
            acquisition=acquisition,
            receiver_crs=crs_config.get("receiver_crs", "EPSG:4326"),
            working_crs=crs_config.get("working_crs", "EPSG:4326"),
            geographic_crs=crs_config.get("geographic_crs", "EPSG:4326"),
            ellipsoid=crs_config.get("ellipsoid", "WGS84"),
            auto_add_vertices=acquisition_config.get("auto_add_vertices", True),
            timestamps=timestamps,
        )
