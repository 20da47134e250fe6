"""Functional Core - Pure functions and in-memory state.

This module contains all business logic:
- Sighting parsing and report validation
- Distance calculations
- Proximity evaluation
- Notification de-duplication
- Message formatting
- Reconnect backoff

Nothing here performs I/O.
"""

from petwatch.core.geo import Coordinate, calculate_distance, is_within_radius
from petwatch.core.sighting import Sighting, SightingReport, parse_sighting, parse_sightings
from petwatch.core.dedup import NotifiedSet
from petwatch.core.proximity import NotificationIntent, evaluate, find_nearby
from petwatch.core.formatter import format_notification, format_sighting_summary

__all__ = [
    # Geo
    "Coordinate",
    "calculate_distance",
    "is_within_radius",
    # Sighting
    "Sighting",
    "SightingReport",
    "parse_sighting",
    "parse_sightings",
    # Dedup
    "NotifiedSet",
    # Proximity
    "NotificationIntent",
    "evaluate",
    "find_nearby",
    # Formatter
    "format_notification",
    "format_sighting_summary",
]
