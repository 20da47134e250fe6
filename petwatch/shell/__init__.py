"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Firestore sighting store (database)
- Cloud Storage photo uploads
- Notification webhook (HTTP)
- Location provider (HTTP) and its watch stream
- Device identity file
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from petwatch.shell.firestore_client import SightingStore, FirestoreConfig
from petwatch.shell.notification_client import NotificationClient, AlertDispatcher
from petwatch.shell.location_stream import HttpLocationProvider, LocationStreamAdapter
from petwatch.shell.sighting_feed import SightingFeedAdapter
from petwatch.shell.config_loader import load_config, Config

__all__ = [
    "SightingStore",
    "FirestoreConfig",
    "NotificationClient",
    "AlertDispatcher",
    "HttpLocationProvider",
    "LocationStreamAdapter",
    "SightingFeedAdapter",
    "load_config",
    "Config",
]
