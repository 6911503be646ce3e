"""
Geodistance utilities.

Great-circle distances between GPS coordinates, shared by the detectors and
by the evidence store's geofence fallback.
"""

import math
from dataclasses import dataclass
from typing import Optional

# Earth radius in meters
EARTH_RADIUS_METERS = 6371000.0


@dataclass(frozen=True)
class Coordinate:
    """A (latitude, longitude) pair in degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of comparing a recorded position against a site geofence."""

    within: bool
    distance_meters: float
    radius_meters: float


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle distance between two coordinates in meters.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in meters
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = (math.sin(delta_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


def check_geofence(position: Coordinate, site: Optional[Coordinate],
                   radius_meters: float) -> GeofenceResult:
    """Check whether a recorded position lies inside a site's geofence.

    A site without coordinates cannot be checked and is treated as inside
    the fence at distance 0.

    Args:
        position: Recorded GPS position
        site: Site location, if known
        radius_meters: Geofence radius

    Returns:
        GeofenceResult
    """
    if site is None:
        return GeofenceResult(within=True, distance_meters=0.0, radius_meters=radius_meters)

    distance = haversine_distance(position, site)
    return GeofenceResult(
        within=distance <= radius_meters,
        distance_meters=distance,
        radius_meters=radius_meters
    )
