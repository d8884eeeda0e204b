"""Geographic calculations - Pure functions.

This module provides great-circle distance calculations between user
locations. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass
from datetime import datetime


# Earth's radius in meters
EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class Location:
    """A reported device location.

    Attributes:
        latitude: Location latitude
        longitude: Location longitude
        timestamp: When the location fix was taken (UTC), if known
    """
    latitude: float
    longitude: float
    timestamp: datetime | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def calculate_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_between(first: Location, second: Location) -> float:
    """Calculate the distance between two locations in meters.

    Pure function.
    """
    return calculate_distance(*first.coordinates, *second.coordinates)


def is_within_radius(
    location: Location,
    center: Location,
    radius_m: float,
) -> bool:
    """Check if a location is within a radius of another location.

    Pure function. The boundary is inclusive.

    Args:
        location: Location to check
        center: Center point
        radius_m: Radius in meters

    Returns:
        True if location is within radius
    """
    return distance_between(location, center) <= radius_m
