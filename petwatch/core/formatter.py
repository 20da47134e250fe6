"""Message formatting - Pure functions.

This module formats sightings and notification intents into user-facing text.
All functions are pure with no side effects.
"""

from typing import Any

from petwatch.core.proximity import NotificationIntent
from petwatch.core.sighting import Sighting


ALERT_TITLE = "Lost pet nearby! 🐾"


def format_distance(distance_m: float) -> str:
    """Format a distance for display.

    Pure function.
    """
    if distance_m < 1000:
        return f"{round(distance_m):d} m"
    return f"{distance_m / 1000:.1f} km"


def format_notification(intent: NotificationIntent) -> tuple[str, str]:
    """Format a notification intent as (title, body).

    Pure function.
    """
    body = (
        f"{intent.name} was reported {format_distance(intent.distance_m)} "
        f"from you. Keep an eye out!"
    )
    return ALERT_TITLE, body


def format_notification_payload(intent: NotificationIntent) -> dict[str, Any]:
    """Build the JSON payload sent to the notification webhook.

    Pure function.
    """
    title, body = format_notification(intent)
    return {
        "title": title,
        "body": body,
        "data": {
            "sighting_id": intent.sighting_id,
            "distance_m": round(intent.distance_m, 1),
        },
    }


def format_sighting_summary(
    sighting: Sighting,
    distance_m: float | None = None,
) -> str:
    """Format a one-line summary of a sighting.

    Pure function.
    """
    parts = [f"[{sighting.id}] {sighting.name}"]
    if distance_m is not None:
        parts.append(f"({format_distance(distance_m)} away)")
    if sighting.coordinate is not None:
        parts.append(
            f"at {sighting.coordinate.latitude:.5f},{sighting.coordinate.longitude:.5f}"
        )
    else:
        parts.append("(no location)")
    if sighting.created_at is not None:
        parts.append(sighting.created_at.strftime("on %Y-%m-%d %H:%M UTC"))
    if sighting.contact:
        parts.append(f"contact: {sighting.contact}")
    return " ".join(parts)
