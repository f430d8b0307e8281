"""
Geodesic helpers.

All distances use the haversine great-circle formula on a spherical Earth
with mean radius 6 371 000 m. Altitude is ignored. At ride-tracking scale
the error against the WGS84 ellipsoid is well under 0.5%.
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray


EARTH_RADIUS_M = 6371000.0  # Mean radius

# Approximate meters per degree of latitude
METERS_PER_DEG_LAT = 111320.0


@dataclass(frozen=True)
class Coordinate:
    """WGS84 position in degrees."""

    latitude: float
    longitude: float

    def distance_to(self, other: "Coordinate") -> float:
        return haversine_distance(
            self.latitude, self.longitude, other.latitude, other.longitude
        )


@dataclass(frozen=True)
class BoundingRegion:
    """Map region: a center and a latitude/longitude span in degrees."""

    center: Coordinate
    latitude_span: float
    longitude_span: float

    @property
    def min_latitude(self) -> float:
        return self.center.latitude - self.latitude_span / 2

    @property
    def max_latitude(self) -> float:
        return self.center.latitude + self.latitude_span / 2

    @property
    def min_longitude(self) -> float:
        return self.center.longitude - self.longitude_span / 2

    @property
    def max_longitude(self) -> float:
        return self.center.longitude + self.longitude_span / 2


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(lat2 - lat1)
    dlon = np.radians(lon2 - lon1)

    a = np.sin(dlat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return float(EARTH_RADIUS_M * c)


def segment_distances(
    latitudes: ArrayLike,
    longitudes: ArrayLike,
) -> NDArray[np.float64]:
    """
    Haversine length of each consecutive segment of a path.

    Args:
        latitudes: Latitude array in degrees
        longitudes: Longitude array in degrees

    Returns:
        Array of length n-1 with segment lengths in meters
        (empty for paths with fewer than two points)
    """
    lat = np.asarray(latitudes, dtype=np.float64)
    lon = np.asarray(longitudes, dtype=np.float64)
    if lat.size < 2:
        return np.zeros(0, dtype=np.float64)

    lat_rad = np.radians(lat)
    dlat = np.diff(lat_rad)
    dlon = np.radians(np.diff(lon))

    a = np.sin(dlat/2)**2 + np.cos(lat_rad[:-1]) * np.cos(lat_rad[1:]) * np.sin(dlon/2)**2
    # Rounding can push a a hair outside [0, 1] for antipodal or identical points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return EARTH_RADIUS_M * c


def path_distance(latitudes: ArrayLike, longitudes: ArrayLike) -> float:
    """Total haversine length of a path in meters."""
    return float(np.sum(segment_distances(latitudes, longitudes)))


def region_around(center: Coordinate, radius_m: float) -> BoundingRegion:
    """
    Square region extending radius_m from center in every direction.

    Longitude span is widened by 1/cos(lat) so the region stays square on
    the ground.
    """
    lat_span = 2 * radius_m / METERS_PER_DEG_LAT
    cos_lat = max(np.cos(np.radians(center.latitude)), 1e-6)
    lon_span = min(2 * radius_m / (METERS_PER_DEG_LAT * cos_lat), 360.0)
    return BoundingRegion(
        center=center,
        latitude_span=float(lat_span),
        longitude_span=float(lon_span),
    )
