"""Geographic calculations - Pure functions.

This module provides coordinates and distance calculations for sightings and
user positions. All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass
from typing import Any


# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class Coordinate:
    """A point on the Earth's surface in decimal degrees.

    Attributes:
        latitude: Latitude in [-90, 90]
        longitude: Longitude in [-180, 180]
    """
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(
                f"Coordinate must be finite: ({self.latitude}, {self.longitude})"
            )
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_optional(cls, latitude: Any, longitude: Any) -> "Coordinate | None":
        """Build a coordinate from raw record values.

        Returns None instead of raising when either value is missing,
        non-numeric or out of range.
        """
        if latitude is None or longitude is None:
            return None
        if isinstance(latitude, bool) or isinstance(longitude, bool):
            return None
        try:
            return cls(latitude=float(latitude), longitude=float(longitude))
        except (TypeError, ValueError):
            return None


def calculate_distance(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance between two coordinates using Haversine formula.

    Pure function.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def is_within_radius(a: Coordinate, b: Coordinate, radius_m: float) -> bool:
    """Check if two coordinates are within a radius of each other.

    Pure function. The boundary is inclusive.

    Args:
        a: First coordinate
        b: Second coordinate
        radius_m: Radius in meters

    Returns:
        True if distance <= radius_m
    """
    return calculate_distance(a, b) <= radius_m


def has_moved(
    previous: Coordinate | None,
    current: Coordinate,
    min_distance_m: float,
) -> bool:
    """Check if a position moved far enough to count as a new update.

    Pure function.

    Args:
        previous: Last delivered position (None if nothing delivered yet)
        current: Newly observed position
        min_distance_m: Minimum distance interval in meters

    Returns:
        True if the update should be delivered
    """
    if previous is None:
        return True
    if min_distance_m <= 0:
        return True
    return calculate_distance(previous, current) >= min_distance_m
