"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, LocationConfig) are defined in petwatch/core/config.py.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from petwatch.core.backoff import BackoffPolicy
from petwatch.core.config import Config, LocationConfig


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/config.yaml"


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} placeholder from the environment.

    Non-string values and plain strings are returned unchanged. Unset
    variables leave the placeholder in place.
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _optional_str(value: Any) -> str | None:
    value = _resolve_value(value)
    if value is None or value == "":
        return None
    return str(value)


def _parse_location(data: dict[str, Any]) -> LocationConfig:
    """Parse location watch settings from config data."""
    defaults = LocationConfig()
    return LocationConfig(
        endpoint_url=_resolve_value(data.get("endpoint_url", defaults.endpoint_url)),
        accuracy=str(data.get("accuracy", defaults.accuracy)),
        distance_interval_m=float(
            data.get("distance_interval_m", defaults.distance_interval_m)
        ),
        poll_interval_seconds=float(
            data.get("poll_interval_seconds", defaults.poll_interval_seconds)
        ),
    )


def _parse_backoff(data: dict[str, Any]) -> BackoffPolicy:
    """Parse the feed reconnect policy from config data."""
    defaults = BackoffPolicy()
    return BackoffPolicy(
        initial_seconds=float(data.get("initial_seconds", defaults.initial_seconds)),
        max_seconds=float(data.get("max_seconds", defaults.max_seconds)),
        multiplier=float(data.get("multiplier", defaults.multiplier)),
        max_attempts=int(data.get("max_attempts", defaults.max_attempts)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    defaults = Config()
    return Config(
        alert_radius_m=float(data.get("alert_radius_m", defaults.alert_radius_m)),
        location=_parse_location(data.get("location") or {}),
        initial_fetch_timeout_seconds=float(
            data.get("initial_fetch_timeout_seconds", defaults.initial_fetch_timeout_seconds)
        ),
        feed_backoff=_parse_backoff(data.get("feed_backoff") or {}),
        notification_webhook_url=_resolve_value(
            data.get("notification_webhook_url", defaults.notification_webhook_url)
        ),
        notification_timeout_seconds=int(
            data.get("notification_timeout_seconds", defaults.notification_timeout_seconds)
        ),
        firestore_project=_optional_str(data.get("firestore_project")),
        firestore_database=_optional_str(data.get("firestore_database")),
        firestore_collection=data.get("firestore_collection", defaults.firestore_collection),
        storage_bucket=_optional_str(data.get("storage_bucket")),
        device_id_path=_optional_str(data.get("device_id_path")),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: radius %.0f m, collection %s",
        config.alert_radius_m,
        config.firestore_collection,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        ALERT_RADIUS_M: Alert radius in meters
        LOCATION_ENDPOINT_URL: Position endpoint for the location provider
        LOCATION_ACCURACY: Accuracy tier
        LOCATION_DISTANCE_INTERVAL_M: Minimum movement between updates
        NOTIFICATION_WEBHOOK_URL: Notification webhook
        FIRESTORE_PROJECT: GCP project ID
        FIRESTORE_DATABASE: Firestore database name
        FIRESTORE_COLLECTION: Sightings collection
        STORAGE_BUCKET: Photo bucket

    Returns:
        Config object from environment
    """
    defaults = Config()
    location_defaults = LocationConfig()

    location = LocationConfig(
        endpoint_url=os.environ.get("LOCATION_ENDPOINT_URL", ""),
        accuracy=os.environ.get("LOCATION_ACCURACY", location_defaults.accuracy),
        distance_interval_m=float(os.environ.get(
            "LOCATION_DISTANCE_INTERVAL_M", location_defaults.distance_interval_m
        )),
        poll_interval_seconds=float(os.environ.get(
            "LOCATION_POLL_INTERVAL_SECONDS", location_defaults.poll_interval_seconds
        )),
    )

    return Config(
        alert_radius_m=float(os.environ.get("ALERT_RADIUS_M", defaults.alert_radius_m)),
        location=location,
        notification_webhook_url=os.environ.get("NOTIFICATION_WEBHOOK_URL", ""),
        firestore_project=os.environ.get("FIRESTORE_PROJECT") or None,
        firestore_database=os.environ.get("FIRESTORE_DATABASE") or None,
        firestore_collection=os.environ.get(
            "FIRESTORE_COLLECTION", defaults.firestore_collection
        ),
        storage_bucket=os.environ.get("STORAGE_BUCKET") or None,
        device_id_path=os.environ.get("DEVICE_ID_PATH") or None,
    )
