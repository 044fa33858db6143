"""
Track accumulation.

Grows the digitized track one accepted position at a time. Incoming valid
positions are converted to the geographic frame, run through the
acquisition policy and appended as vertices; total length and straight
distance from the first vertex are then recomputed from scratch on the
configured ellipsoid.

State machine per digitizing session:
    Empty (0 vertices) --add_vertex--> Tracking (>=1 vertices)
    Tracking --reset_track--> Empty
track_is_empty_changed fires once per crossing, not per vertex.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, NamedTuple, Optional, Tuple

import numpy as np

from fieldtrack_core.proto.positioning_report import (
    PositioningReport,
    InformationComponent,
)
from fieldtrack_core.io.signals import Signal
from fieldtrack_core.localization.fix_classifier import is_valid, component_value
from fieldtrack_core.localization.coordinate_transform import CoordinateTransform
from fieldtrack_core.localization.distance_calculator import DistanceCalculator
from fieldtrack_core.localization.connection_tracker import ConnectionStateTracker
from fieldtrack_core.metrics import get_metrics
from .track_settings import TrackSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackVertex:
    """
    One track vertex in the geographic frame.

    Attributes:
        x: Longitude (degrees)
        y: Latitude (degrees)
        z: Elevation (meters)
        timestamp: Vertex time after leap-second/time-zone handling, if known
    """

    x: float
    y: float
    z: float
    timestamp: Optional[datetime] = None

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass
class TrackFeature:
    """
    Finished track handed over to the persistence collaborator.

    Attributes:
        vertices: Vertices in temporal order
        total_length_m: Ellipsoidal cumulative length
        start_to_end_distance_m: Ellipsoidal distance first -> last vertex
        crs: Geographic CRS of the vertices
        ellipsoid: Ellipsoid the lengths were computed on
    """

    vertices: List[TrackVertex]
    total_length_m: float
    start_to_end_distance_m: float
    crs: str
    ellipsoid: str
    timestamps: List[Optional[datetime]] = field(init=False)

    def __post_init__(self):
        self.timestamps = [v.timestamp for v in self.vertices]

    @property
    def is_line(self) -> bool:
        """True if the track has enough vertices to form a line."""
        return len(self.vertices) >= 2

    @property
    def start_time(self) -> Optional[datetime]:
        return self.vertices[0].timestamp if self.vertices else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.vertices[-1].timestamp if self.vertices else None

    def to_wkt(self) -> str:
        """LineStringZ WKT of the vertices."""
        if not self.vertices:
            return "LineStringZ EMPTY"
        coords = ", ".join(f"{v.x!r} {v.y!r} {v.z!r}" for v in self.vertices)
        return f"LineStringZ ({coords})"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'crs': self.crs,
            'ellipsoid': self.ellipsoid,
            'total_length_m': self.total_length_m,
            'start_to_end_distance_m': self.start_to_end_distance_m,
            'vertices': [
                {
                    'x': v.x,
                    'y': v.y,
                    'z': v.z,
                    'timestamp': v.timestamp.isoformat() if v.timestamp else None,
                }
                for v in self.vertices
            ],
        }


class _Geometry(NamedTuple):
    """Settings snapshot together with the objects built from it."""

    settings: TrackSettings
    transform: CoordinateTransform       # receiver -> geographic
    map_transform: CoordinateTransform   # working -> geographic
    calculator: DistanceCalculator


class TrackAccumulator:
    """
    Owns the growing track of one digitizing session.

    Signals:
        track_changed(): vertices or derived lengths changed
        track_is_empty_changed(bool): track became empty / non-empty
        distance_area_changed(): ellipsoid or geographic frame changed

    Usage:
        accumulator = TrackAccumulator(tracker, settings)
        accumulator.track_changed.connect(redraw)
        accumulator.add_vertex()            # from the last report
        feature = accumulator.create_feature()
        accumulator.reset_track()

    When attached to a ConnectionStateTracker with auto_add_vertices set,
    every processed report is offered to add_vertex().
    """

    def __init__(
        self,
        connection: Optional[ConnectionStateTracker] = None,
        settings: Optional[TrackSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize accumulator.

        Args:
            connection: Tracker supplying reports and connection state; when
                None, reports must be passed to add_vertex() explicitly and
                connectivity is not checked
            settings: Configuration snapshot (uses defaults if None)
            clock: Monotonic clock in seconds, used by the acquisition policy
        """
        self._clock = clock
        self._geometry = self._build_geometry(settings or TrackSettings())

        self._vertices: List[TrackVertex] = []
        self._last_elevation = 0.0
        self._last_accepted_time: Optional[float] = None
        self._last_accepted_position: Optional[Tuple[float, float]] = None
        self._total_length = 0.0
        self._start_to_end = 0.0

        # Nesting depth of report handling from the tracker
        self._block_state_changed = 0

        self.track_changed = Signal("track_changed")
        self.track_is_empty_changed = Signal("track_is_empty_changed")
        self.distance_area_changed = Signal("distance_area_changed")

        self.metrics = get_metrics()

        self._connection: Optional[ConnectionStateTracker] = None
        if connection is not None:
            self.attach(connection)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> TrackSettings:
        return self._geometry.settings

    @property
    def distance_calculator(self) -> DistanceCalculator:
        return self._geometry.calculator

    @property
    def transform(self) -> CoordinateTransform:
        """Receiver frame -> geographic frame."""
        return self._geometry.transform

    @property
    def map_transform(self) -> CoordinateTransform:
        """Working (map) frame -> geographic frame."""
        return self._geometry.map_transform

    @property
    def connection(self) -> Optional[ConnectionStateTracker]:
        return self._connection

    @property
    def vertices(self) -> Tuple[TrackVertex, ...]:
        """Read-only view of the current vertices."""
        return tuple(self._vertices)

    @property
    def is_empty(self) -> bool:
        return not self._vertices

    @property
    def last_elevation(self) -> float:
        return self._last_elevation

    @property
    def total_track_length(self) -> float:
        """Ellipsoidal length of the track in meters."""
        return self._total_length

    @property
    def track_distance_from_start(self) -> float:
        """Ellipsoidal distance from the first to the last vertex in meters."""
        return self._start_to_end

    def component_value(self, component: InformationComponent):
        """
        Read an information component for presentation.

        Track components come from this accumulator (None while empty);
        the others come from the tracker's last report.
        """
        if component == InformationComponent.TOTAL_TRACK_LENGTH:
            return None if self.is_empty else self._total_length
        if component == InformationComponent.TRACK_DISTANCE_FROM_START:
            return None if self.is_empty else self._start_to_end
        if self._connection is None:
            return None
        return component_value(self._connection.last_report, component)

    def track_in_working_frame(self) -> np.ndarray:
        """Vertices as an (N, 3) array in the working frame."""
        if not self._vertices:
            return np.zeros((0, 3))
        points = np.array([v.as_tuple() for v in self._vertices], dtype=float)
        return self._geometry.map_transform.points_from_geographic(points)

    # ------------------------------------------------------------------
    # Wiring and settings
    # ------------------------------------------------------------------

    def attach(self, connection: ConnectionStateTracker) -> None:
        """Follow reports processed by a connection tracker."""
        if self._connection is not None:
            self.detach()
        self._connection = connection
        connection.state_changed.connect(self._on_state_changed)

    def detach(self) -> None:
        """Stop following the current connection tracker."""
        if self._connection is not None:
            self._connection.state_changed.disconnect(self._on_state_changed)
        self._connection = None

    def apply_settings(self, settings: TrackSettings) -> None:
        """
        Swap in a new settings snapshot.

        When the ellipsoid or geographic frame changes, stored vertices are
        moved to the new frame, lengths are recomputed and
        distance_area_changed is emitted.
        """
        old = self._geometry
        new = self._build_geometry(settings, previous=old)

        frame_changed = old.settings.geographic_crs != settings.geographic_crs
        ellipsoid_changed = old.settings.ellipsoid != settings.ellipsoid

        if frame_changed and self._vertices:
            self._reproject_vertices(old.settings.geographic_crs, settings.geographic_crs)

        self._geometry = new
        logger.info(
            f"Track settings applied: acquisition={settings.acquisition}, "
            f"ellipsoid={settings.ellipsoid}, crs={settings.receiver_crs}->{settings.geographic_crs}"
        )

        if frame_changed or ellipsoid_changed:
            self._recompute_lengths()
            self.distance_area_changed.emit()

    # ------------------------------------------------------------------
    # Track operations
    # ------------------------------------------------------------------

    def add_vertex(self, report: Optional[PositioningReport] = None) -> bool:
        """
        Offer a position to the track.

        Args:
            report: Report to use; defaults to the tracker's last report

        Returns:
            True if a vertex was appended, False if the report was invalid,
            the transport is not connected or the acquisition policy held it
            back
        """
        if self._connection is not None and not self._connection.is_connected:
            self.metrics.reject('not_connected')
            logger.debug("add_vertex: receiver not connected")
            return False

        if report is None:
            if self._connection is None:
                self.metrics.reject('no_report')
                return False
            report = self._connection.last_report

        if not is_valid(report):
            self.metrics.reject('invalid_fix')
            logger.debug("add_vertex: invalid report")
            return False

        geometry = self._geometry
        lon, lat = geometry.transform.to_geographic(report.longitude, report.latitude)
        now = self._clock()

        if self._last_accepted_position is not None:
            elapsed = now - self._last_accepted_time
            moved = geometry.calculator.distance(self._last_accepted_position, (lon, lat))
            accepted, reason = geometry.settings.acquisition.evaluate(elapsed, moved)
            if not accepted:
                self.metrics.hold(reason)
                logger.debug(f"add_vertex: held back ({reason}, dt={elapsed:.1f}s, d={moved:.2f}m)")
                return False
            self.metrics.record_histogram('vertex_interval_s', elapsed)
            self.metrics.record_histogram('segment_length_m', moved)

        vertex = TrackVertex(
            x=lon,
            y=lat,
            z=report.elevation,
            timestamp=geometry.settings.timestamps.convert(report.utc_time),
        )

        was_empty = not self._vertices
        self._vertices.append(vertex)
        self._last_elevation = report.elevation
        self._last_accepted_time = now
        self._last_accepted_position = (lon, lat)
        self._recompute_lengths()
        self.metrics.increment('vertices_added')

        logger.debug(
            f"Vertex {len(self._vertices)} at ({lon:.7f}, {lat:.7f}, {report.elevation:.2f}), "
            f"length={self._total_length:.2f}m"
        )

        if was_empty:
            self.track_is_empty_changed.emit(False)
        self.track_changed.emit()
        return True

    def reset_track(self) -> None:
        """Clear the track; the next accepted position starts a new one."""
        was_empty = not self._vertices

        self._vertices.clear()
        self._last_accepted_time = None
        self._last_accepted_position = None
        self._total_length = 0.0
        self._start_to_end = 0.0
        self.metrics.increment('track_resets')

        if not was_empty:
            logger.info("Track reset")
            self.track_is_empty_changed.emit(True)
        self.track_changed.emit()

    def create_feature(self) -> TrackFeature:
        """
        Hand over the current track.

        The track itself is left untouched; the caller decides whether to
        call reset_track() afterwards.
        """
        settings = self._geometry.settings
        feature = TrackFeature(
            vertices=list(self._vertices),
            total_length_m=self._total_length,
            start_to_end_distance_m=self._start_to_end,
            crs=settings.geographic_crs,
            ellipsoid=settings.ellipsoid,
        )
        logger.info(
            f"Track feature created: {len(feature.vertices)} vertices, "
            f"{feature.total_length_m:.2f}m"
        )
        return feature

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_state_changed(self, report: PositioningReport):
        if self._block_state_changed:
            return

        self._block_state_changed += 1
        try:
            if is_valid(report):
                self._last_elevation = report.elevation
            if self._geometry.settings.auto_add_vertices:
                self.add_vertex(report)
        finally:
            self._block_state_changed -= 1

    def _recompute_lengths(self):
        if len(self._vertices) < 2:
            self._total_length = 0.0
            self._start_to_end = 0.0
            return

        calculator = self._geometry.calculator
        coords = np.array([(v.x, v.y) for v in self._vertices], dtype=float)
        self._total_length = calculator.length(coords)
        self._start_to_end = calculator.distance(coords[0], coords[-1])

    def _reproject_vertices(self, old_crs: str, new_crs: str):
        between = CoordinateTransform(old_crs, new_crs)
        self._vertices = [
            TrackVertex(*between.to_geographic(v.x, v.y), v.z, v.timestamp)
            for v in self._vertices
        ]
        if self._last_accepted_position is not None:
            self._last_accepted_position = between.to_geographic(*self._last_accepted_position)

    @staticmethod
    def _build_geometry(settings: TrackSettings, previous: Optional[_Geometry] = None) -> _Geometry:
        same_frame = (
            previous is not None
            and previous.settings.geographic_crs == settings.geographic_crs
        )

        if same_frame and previous.settings.receiver_crs == settings.receiver_crs:
            transform = previous.transform
        else:
            transform = CoordinateTransform(settings.receiver_crs, settings.geographic_crs)

        if same_frame and previous.settings.working_crs == settings.working_crs:
            map_transform = previous.map_transform
        else:
            map_transform = CoordinateTransform(settings.working_crs, settings.geographic_crs)

        if previous is not None and previous.settings.ellipsoid == settings.ellipsoid:
            calculator = previous.calculator
        else:
            calculator = DistanceCalculator(settings.ellipsoid)

        return _Geometry(settings, transform, map_transform, calculator)
