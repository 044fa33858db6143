"""
Coordinate reference system transform.

Reprojects points from a source frame (the receiver CRS or the live map CRS)
to a fixed geographic frame, and back. Uses pyproj with always_xy=True so coordinates
are always ordered (easting/longitude, northing/latitude) whatever the axis
order declared by the CRS.
"""

import logging
from typing import Optional, Tuple

import numpy as np
from pyproj import CRS, Transformer

logger = logging.getLogger(__name__)


class CoordinateTransform:
    """
    Transform between a source CRS and a geographic CRS.

    Holds only the two frame definitions and the pyproj transformers built
    from them; every call is independent of previous calls. When both frames
    are the same CRS, points pass through untouched.

    Usage:
        transform = CoordinateTransform("EPSG:3857", "EPSG:4326")
        lon, lat = transform.to_geographic(x, y)
        x, y = transform.from_geographic(lon, lat)
    """

    def __init__(self, source_crs="EPSG:4326", geographic_crs="EPSG:4326"):
        """
        Initialize transform.

        Args:
            source_crs: Source frame, anything pyproj.CRS accepts
            geographic_crs: Geographic frame the track is stored in
        """
        self.source_crs = CRS.from_user_input(source_crs)
        self.geographic_crs = CRS.from_user_input(geographic_crs)

        if not self.geographic_crs.is_geographic:
            raise ValueError(f"Not a geographic CRS: {self.geographic_crs.to_string()}")

        self._identity = self.source_crs == self.geographic_crs
        if self._identity:
            self._forward = None
            self._inverse = None
        else:
            self._forward = Transformer.from_crs(
                self.source_crs, self.geographic_crs, always_xy=True
            )
            self._inverse = Transformer.from_crs(
                self.geographic_crs, self.source_crs, always_xy=True
            )

        logger.debug(
            f"CoordinateTransform {self.source_crs.to_string()} -> "
            f"{self.geographic_crs.to_string()} (identity={self._identity})"
        )

    @property
    def is_identity(self) -> bool:
        """True if source and geographic frames are the same CRS."""
        return self._identity

    def to_geographic(self, x: float, y: float, z: Optional[float] = None) -> Tuple:
        """
        Transform a point from the source frame to the geographic frame.

        Returns:
            (lon, lat) or (lon, lat, z) when z is given
        """
        return self._apply(self._forward, x, y, z)

    def from_geographic(self, lon: float, lat: float, z: Optional[float] = None) -> Tuple:
        """
        Transform a point from the geographic frame to the source frame.

        Returns:
            (x, y) or (x, y, z) when z is given
        """
        return self._apply(self._inverse, lon, lat, z)

    def points_from_geographic(self, points: np.ndarray) -> np.ndarray:
        """
        Transform an (N, 2) or (N, 3) array of geographic points in one call.

        Columns beyond the second are carried through unchanged.
        """
        points = np.asarray(points, dtype=float)
        if self._identity or len(points) == 0:
            return points.copy()

        out = points.copy()
        xs, ys = self._inverse.transform(points[:, 0], points[:, 1])
        out[:, 0] = xs
        out[:, 1] = ys
        return out

    def _apply(self, transformer, x, y, z):
        if transformer is None:
            return (x, y) if z is None else (x, y, z)
        if z is None:
            return transformer.transform(x, y)
        return transformer.transform(x, y, z)
