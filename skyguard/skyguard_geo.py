"""
SkyGuard Geodesy Helpers
========================
Distances and dead reckoning over the small theaters the engine simulates.

Frames:
  - Geodetic (lat, lng in degrees, altitude in meters)
  - Local planar km (east, north, up) around a reference latitude

The planar frame uses the equirectangular approximation (111 km per degree
of latitude, scaled by cos(lat) for longitude). Over a few hundred km it is
within a fraction of a percent of the great-circle result, which is plenty
for anomaly scoring and pursuit guidance.
"""

import numpy as np
from typing import Tuple

from .skyguard_entities import Position

EARTH_RADIUS_KM = 6371.0
KM_PER_DEG_LAT = 111.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great circle distance between two geodetic points, in km."""
    lat1, lng1, lat2, lng2 = map(np.radians, [lat1, lng1, lat2, lng2])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlng / 2) ** 2
    return float(2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(min(a, 1.0))))


def distance_km(a: Position, b: Position) -> float:
    """Ground distance between two positions (altitude ignored)."""
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def planar_offset_km(origin: Position, target: Position) -> np.ndarray:
    """[east, north, up] km vector from ``origin`` to ``target``."""
    cos_lat = np.cos(np.radians(origin.lat))
    east = (target.lng - origin.lng) * KM_PER_DEG_LAT * cos_lat
    north = (target.lat - origin.lat) * KM_PER_DEG_LAT
    up = (target.altitude - origin.altitude) / 1000.0
    return np.array([east, north, up], dtype=float)


def planar_distance_km(a: Position, b: Position) -> float:
    """Horizontal planar distance, the great-circle-equivalent used for anomaly scoring."""
    return float(np.linalg.norm(planar_offset_km(a, b)[:2]))


def offset_position(origin: Position, enu_km: np.ndarray) -> Position:
    """Inverse of :func:`planar_offset_km`."""
    cos_lat = np.cos(np.radians(origin.lat))
    lat = origin.lat + enu_km[1] / KM_PER_DEG_LAT
    lng = origin.lng + enu_km[0] / (KM_PER_DEG_LAT * max(cos_lat, 1e-6))
    alt = origin.altitude + enu_km[2] * 1000.0
    return Position(float(lat), float(lng), float(alt))


def dead_reckon(position: Position, heading_deg: float, speed_kmh: float,
                seconds: float) -> Position:
    """Advance a position along a constant heading at constant ground speed.

    Args:
        position: Start point
        heading_deg: Course in degrees clockwise from north
        speed_kmh: Ground speed in km/h
        seconds: Elapsed time

    Returns:
        New position at the same altitude.
    """
    distance = speed_kmh / 3600.0 * seconds
    heading = np.radians(heading_deg)
    d_lat = distance * np.cos(heading) / KM_PER_DEG_LAT
    cos_lat = max(np.cos(np.radians(position.lat)), 1e-6)
    d_lng = distance * np.sin(heading) / (KM_PER_DEG_LAT * cos_lat)
    return Position(float(position.lat + d_lat), float(position.lng + d_lng),
                    position.altitude)


def heading_delta(a_deg: float, b_deg: float) -> float:
    """Smallest absolute angle between two headings, in [0, 180]."""
    delta = abs(a_deg - b_deg) % 360.0
    return 360.0 - delta if delta > 180.0 else delta


def within_bounds(position: Position,
                  lat_range: Tuple[float, float],
                  lng_range: Tuple[float, float]) -> bool:
    return (lat_range[0] <= position.lat <= lat_range[1]
            and lng_range[0] <= position.lng <= lng_range[1])
