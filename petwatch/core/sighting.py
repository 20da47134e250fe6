"""Sighting data models and parsing - Pure functions.

This module handles parsing store records into typed Sighting objects and
building records for new reports. All functions are pure with no side effects.

Record fields keep the names used by the existing store:
nombre, contacto, descripcion, imagen_url, latitud, longitud, user_id,
created_at (older records carry timestamp instead).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from petwatch.core.geo import Coordinate


@dataclass(frozen=True)
class Sighting:
    """Immutable pet sighting.

    Attributes:
        id: Store record ID
        name: Pet name
        coordinate: Where the pet was seen (None for incomplete records)
        created_at: When the report was created (UTC)
        contact: Contact phone for the owner
        description: Free text description
        image_url: Public URL of the attached photo
        device_id: Device identity of the reporter (advisory only)
    """
    id: str
    name: str
    coordinate: Coordinate | None = None
    created_at: datetime | None = None
    contact: str | None = None
    description: str | None = None
    image_url: str | None = None
    device_id: str | None = None

    @property
    def has_location(self) -> bool:
        """True when the sighting can take part in proximity checks."""
        return self.coordinate is not None


@dataclass(frozen=True)
class SightingReport:
    """A new sighting about to be submitted.

    Attributes:
        name: Pet name
        contact: Contact phone
        coordinate: Where the pet was seen
        device_id: Device identity of the reporter
        description: Optional free text
        image_url: Public URL of an uploaded photo
    """
    name: str
    contact: str
    coordinate: Coordinate | None
    device_id: str
    description: str = ""
    image_url: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Build the store record for this report."""
        return {
            "nombre": self.name.strip(),
            "contacto": self.contact.strip(),
            "descripcion": self.description,
            "imagen_url": self.image_url,
            "latitud": self.coordinate.latitude if self.coordinate else None,
            "longitud": self.coordinate.longitude if self.coordinate else None,
            "user_id": self.device_id,
            "created_at": datetime.now(timezone.utc),
        }


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse the creation time from a record value.

    Accepts datetimes (Firestore returns timezone-aware ones), epoch
    milliseconds and ISO 8601 strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_sighting(record_id: Any, data: dict[str, Any]) -> Sighting | None:
    """Parse a store record into a Sighting.

    Pure function: records without a name return None. Records with missing
    or invalid coordinates are kept with coordinate=None.

    Args:
        record_id: Store record ID (string or integer)
        data: Record fields

    Returns:
        Sighting object or None if the record is unusable
    """
    if record_id is None or data is None:
        return None

    name = _optional_str(data.get("nombre"))
    if name is None:
        return None

    created = data.get("created_at")
    if created is None:
        created = data.get("timestamp")

    return Sighting(
        id=str(record_id),
        name=name,
        coordinate=Coordinate.from_optional(data.get("latitud"), data.get("longitud")),
        created_at=_parse_timestamp(created),
        contact=_optional_str(data.get("contacto")),
        description=_optional_str(data.get("descripcion")),
        image_url=_optional_str(data.get("imagen_url")),
        device_id=_optional_str(data.get("user_id")),
    )


def parse_sightings(records: list[tuple[Any, dict[str, Any]]]) -> list[Sighting]:
    """Parse (id, data) pairs into Sightings.

    Pure function: drops unusable records.

    Returns:
        List of Sightings, newest first (undated records last)
    """
    sightings = []
    for record_id, data in records:
        sighting = parse_sighting(record_id, data)
        if sighting is not None:
            sightings.append(sighting)

    oldest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        sightings,
        key=lambda s: s.created_at or oldest,
        reverse=True,
    )


def filter_locatable(sightings: list[Sighting]) -> list[Sighting]:
    """Keep only sightings that have a coordinate.

    Pure function.
    """
    return [s for s in sightings if s.has_location]


def validate_report(report: SightingReport) -> list[str]:
    """Check a report for missing required fields.

    Pure function.

    Returns:
        List of problems (empty when the report is complete)
    """
    problems = []
    if not report.name or not report.name.strip():
        problems.append("Pet name is required")
    if not report.contact or not report.contact.strip():
        problems.append("Contact phone is required")
    if report.coordinate is None:
        problems.append("Location is required")
    if not report.device_id:
        problems.append("Device identity is required")
    return problems


def is_duplicate_report(
    report: SightingReport,
    existing: list[Sighting],
) -> bool:
    """Check whether the reporting device already submitted this pet name.

    Pure function.
    """
    name = report.name.strip()
    return any(
        s.name == name and s.device_id == report.device_id
        for s in existing
    )
