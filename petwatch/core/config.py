"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from petwatch.core.backoff import BackoffPolicy


# Accuracy tiers understood by the location provider
ACCURACY_TIERS = (
    "lowest",
    "low",
    "balanced",
    "high",
    "highest",
    "best_for_navigation",
)


@dataclass
class LocationConfig:
    """Location watch configuration.

    Attributes:
        endpoint_url: Position endpoint polled by the HTTP provider
        accuracy: Requested accuracy tier
        distance_interval_m: Minimum movement before a new update is delivered
        poll_interval_seconds: Delay between provider polls in watch mode
    """
    endpoint_url: str = ""
    accuracy: str = "balanced"
    distance_interval_m: float = 10.0
    poll_interval_seconds: float = 5.0


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        alert_radius_m: Alert when a sighting is within this many meters
        location: Location watch settings
        initial_fetch_timeout_seconds: Bound on the one-shot position and feed reads
        feed_backoff: Reconnect policy for the sighting feed
        notification_webhook_url: Endpoint that shows local notifications
        notification_timeout_seconds: Timeout for notification requests
        firestore_project: GCP project ID (None for default)
        firestore_database: Firestore database name (None for default database)
        firestore_collection: Collection holding sighting records
        storage_bucket: Cloud Storage bucket for photos (None disables uploads)
        device_id_path: File holding this installation's identity
    """
    alert_radius_m: float = 200.0
    location: LocationConfig = field(default_factory=LocationConfig)
    initial_fetch_timeout_seconds: float = 15.0
    feed_backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    notification_webhook_url: str = ""
    notification_timeout_seconds: int = 10
    firestore_project: str | None = None
    firestore_database: str | None = None
    firestore_collection: str = "mascotas"
    storage_bucket: str | None = None
    device_id_path: str | None = None


def validate_config(config: Config) -> list[str]:
    """Check configuration values.

    Pure function.

    Returns:
        List of problems (empty when the config is usable)
    """
    problems = []
    if config.alert_radius_m <= 0:
        problems.append(f"alert_radius_m must be positive, got {config.alert_radius_m}")
    if config.location.accuracy not in ACCURACY_TIERS:
        problems.append(
            f"Unknown location accuracy '{config.location.accuracy}', "
            f"expected one of: {', '.join(ACCURACY_TIERS)}"
        )
    if config.location.distance_interval_m < 0:
        problems.append("location.distance_interval_m must not be negative")
    if config.location.poll_interval_seconds <= 0:
        problems.append("location.poll_interval_seconds must be positive")
    if config.initial_fetch_timeout_seconds <= 0:
        problems.append("initial_fetch_timeout_seconds must be positive")
    if config.feed_backoff.initial_seconds <= 0:
        problems.append("feed_backoff.initial_seconds must be positive")
    if config.feed_backoff.max_seconds < config.feed_backoff.initial_seconds:
        problems.append("feed_backoff.max_seconds must be >= initial_seconds")
    if config.feed_backoff.multiplier < 1:
        problems.append("feed_backoff.multiplier must be >= 1")
    return problems
