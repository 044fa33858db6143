"""
Ellipsoidal distance calculation.

Geodesic distances and polyline lengths on an ellipsoid of revolution,
computed with pyproj.Geod. Points are given in the geographic frame as
(lon, lat) or (lon, lat, z) sequences; z is ignored.
"""

from typing import Sequence

import numpy as np
from pyproj import Geod
from pyproj.exceptions import GeodError


class DistanceCalculator:
    """
    Geodesic distance calculator bound to one ellipsoid.

    The ellipsoid is immutable; use with_ellipsoid() to get a calculator for
    another model. Lengths computed with a previous model must not be reused.

    Usage:
        calc = DistanceCalculator("WGS84")
        d = calc.distance((0.0, 0.0), (0.0, 0.0001))   # ~11.06 m
        total = calc.length([(0, 0), (0, 0.0001), (0.0001, 0.0001)])
    """

    DEFAULT_ELLIPSOID = "WGS84"

    def __init__(self, ellipsoid: str = DEFAULT_ELLIPSOID):
        """
        Initialize calculator.

        Args:
            ellipsoid: pyproj ellipsoid name (e.g. "WGS84", "GRS80", "intl")

        Raises:
            ValueError: If pyproj does not know the ellipsoid
        """
        try:
            self._geod = Geod(ellps=ellipsoid)
        except (KeyError, ValueError, GeodError) as e:
            raise ValueError(f"Unknown ellipsoid {ellipsoid!r}: {e}") from e
        self._ellipsoid = ellipsoid

    @property
    def ellipsoid(self) -> str:
        """Ellipsoid name."""
        return self._ellipsoid

    def with_ellipsoid(self, ellipsoid: str) -> "DistanceCalculator":
        """Return a calculator for another ellipsoid."""
        return DistanceCalculator(ellipsoid)

    def distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        """
        Geodesic distance between two points.

        Args:
            a: First point (lon, lat[, z]) in degrees
            b: Second point (lon, lat[, z]) in degrees

        Returns:
            Distance in meters
        """
        _, _, dist = self._geod.inv(a[0], a[1], b[0], b[1])
        return float(dist)

    def bearing(self, a: Sequence[float], b: Sequence[float]) -> float:
        """
        Forward azimuth from a to b.

        Returns:
            Bearing in degrees (0-360, 0=North)
        """
        az12, _, _ = self._geod.inv(a[0], a[1], b[0], b[1])
        return float(az12) % 360.0

    def length(self, points) -> float:
        """
        Cumulative geodesic length over consecutive points.

        Args:
            points: Sequence or (N, 2+) array of (lon, lat[, z])

        Returns:
            Length in meters (0.0 for fewer than 2 points)
        """
        coords = np.asarray(points, dtype=float)
        if coords.ndim != 2 or len(coords) < 2:
            return 0.0

        return float(self._geod.line_length(coords[:, 0], coords[:, 1]))

    def segment_lengths(self, points) -> np.ndarray:
        """Geodesic length of each consecutive segment (N-1 values)."""
        coords = np.asarray(points, dtype=float)
        if coords.ndim != 2 or len(coords) < 2:
            return np.zeros(0)

        return np.asarray(self._geod.line_lengths(coords[:, 0], coords[:, 1]), dtype=float)
