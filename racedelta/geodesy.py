"""
Geodesy Primitives for Race Delta Analysis

This module provides great-circle distance and bearing on a spherical Earth.
Both functions accept scalars or numpy arrays so proximity scans over a whole
trace can be done in one vectorized call.
"""

import numpy as np
from typing import Sequence, Union

from . import constants
from .models import Coordinate, PositionSample

ArrayLike = Union[float, np.ndarray]


def haversine_m(lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike) -> ArrayLike:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula to compute distance along the surface of a sphere.

    Args:
        lat1, lon1: Latitude and longitude of first point in degrees.
        lat2, lon2: Latitude and longitude of second point in degrees.

    Returns:
        Distance in meters between the two points.
    """
    R = constants.EARTH_RADIUS_M
    lat1_rad, lon1_rad = np.deg2rad(lat1), np.deg2rad(lon1)
    lat2_rad, lon2_rad = np.deg2rad(lat2), np.deg2rad(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    # Rounding can push a fractionally above 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return R * c


def bearing_deg(lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike) -> ArrayLike:
    """
    Calculate the initial bearing from the first point to the second.

    Identical points have no direction; they yield 0.0 rather than NaN.

    Args:
        lat1, lon1: Latitude and longitude of the origin in degrees.
        lat2, lon2: Latitude and longitude of the destination in degrees.

    Returns:
        Bearing in degrees, normalized to [0, 360).
    """
    lat1_rad, lat2_rad = np.deg2rad(lat1), np.deg2rad(lat2)
    dlon = np.deg2rad(np.asarray(lon2) - np.asarray(lon1))

    y = np.sin(dlon) * np.cos(lat2_rad)
    x = np.cos(lat1_rad) * np.sin(lat2_rad) - np.sin(lat1_rad) * np.cos(lat2_rad) * np.cos(dlon)

    degenerate = (np.abs(x) < 1e-15) & (np.abs(y) < 1e-15)
    bearing = np.mod(np.rad2deg(np.arctan2(y, x)), 360.0)
    bearing = np.where(degenerate, 0.0, bearing)
    # np.mod can return exactly 360.0 for tiny negative angles
    bearing = np.where(bearing >= 360.0, 0.0, bearing)

    if np.ndim(bearing) == 0:
        return float(bearing)
    return bearing


def distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters between two coordinates."""
    return float(haversine_m(a.lat, a.lon, b.lat, b.lon))


def bearing(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing in degrees from a to b, in [0, 360)."""
    return float(bearing_deg(a.lat, a.lon, b.lat, b.lon))


def distances_to(samples: Sequence[PositionSample], target: Coordinate) -> np.ndarray:
    """
    Distance from every sample in a stream to a single coordinate.

    Args:
        samples: Position samples, in the order the caller will index them.
        target: Reference coordinate.

    Returns:
        Array of distances in meters, one per sample.
    """
    if not samples:
        return np.empty(0, dtype=float)
    lats = np.fromiter((s.lat for s in samples), dtype=float, count=len(samples))
    lons = np.fromiter((s.lon for s in samples), dtype=float, count=len(samples))
    return haversine_m(lats, lons, target.lat, target.lon)
