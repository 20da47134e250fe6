"""Proximity evaluation.

Decides which sightings are newly within the alert radius of the user.
evaluate() is stateless with respect to its arguments except for the
NotifiedSet it is handed: every emitted intent claims its sighting ID there.
"""

from dataclasses import dataclass

from petwatch.core.dedup import NotifiedSet
from petwatch.core.geo import Coordinate, calculate_distance
from petwatch.core.sighting import Sighting, filter_locatable


@dataclass(frozen=True)
class NotificationIntent:
    """Decision to alert the user about a sighting.

    Attributes:
        sighting_id: ID of the sighting
        name: Pet name shown in the alert
        distance_m: Distance from the user when the decision was made
    """
    sighting_id: str
    name: str
    distance_m: float


def evaluate(
    user_position: Coordinate | None,
    sightings: list[Sighting],
    radius_m: float,
    notified: NotifiedSet,
) -> list[NotificationIntent]:
    """Find sightings that should trigger an alert now.

    A sighting qualifies when it has a coordinate, lies within radius_m of the
    user (inclusive) and has not been notified before. Qualifying IDs are
    claimed in `notified` as they are emitted, so re-running with the same
    inputs emits nothing, and concurrent callers never emit the same ID twice.

    Args:
        user_position: Last known user position (None if unknown)
        sightings: Sightings to check
        radius_m: Alert radius in meters
        notified: Session-wide notified set (mutated)

    Returns:
        Notification intents, in input order
    """
    if user_position is None:
        return []

    intents = []
    for sighting in filter_locatable(sightings):
        distance = calculate_distance(user_position, sighting.coordinate)
        if distance > radius_m:
            continue

        if not notified.claim(sighting.id):
            continue

        intents.append(NotificationIntent(
            sighting_id=sighting.id,
            name=sighting.name,
            distance_m=distance,
        ))

    return intents


def find_nearby(
    user_position: Coordinate,
    sightings: list[Sighting],
    radius_m: float,
) -> list[tuple[Sighting, float]]:
    """List sightings within a radius, nearest first.

    Pure function: does not consult or modify any notified set.

    Returns:
        List of (sighting, distance_m) tuples
    """
    nearby = []
    for sighting in filter_locatable(sightings):
        distance = calculate_distance(user_position, sighting.coordinate)
        if distance <= radius_m:
            nearby.append((sighting, distance))

    return sorted(nearby, key=lambda pair: pair[1])
