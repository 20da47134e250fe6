"""Firestore Client - Imperative Shell.

This module reads, writes and watches sighting records in Google Cloud
Firestore. All I/O is contained here; parsing and duplicate detection are in
the core module.

Document structure (collection "mascotas"):
{
    "nombre": "Luna",
    "contacto": "+56 9 1234 5678",
    "descripcion": "...",
    "imagen_url": "https://...",
    "latitud": -33.45,
    "longitud": -70.66,
    "user_id": "<device id>",
    "created_at": <timestamp>
}
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from petwatch.core.errors import DuplicateSubmissionError, StoreError
from petwatch.core.sighting import (
    Sighting,
    SightingReport,
    parse_sighting,
    parse_sightings,
)


logger = logging.getLogger(__name__)


# Default collection name for sighting records
DEFAULT_COLLECTION = "mascotas"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection holding sightings
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION


class FeedWatch:
    """Handle for a Firestore insert subscription."""

    def __init__(self, watch: Any) -> None:
        self._watch = watch
        self._closed = False
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        """False once the underlying stream stopped delivering snapshots."""
        if self._closed:
            return False
        return bool(self._watch.is_active)

    def unsubscribe(self) -> None:
        """Stop the watch. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._watch.unsubscribe()


class SightingStore:
    """Client for the sighting record set in Firestore.

    This is part of the imperative shell - it handles database I/O.
    A single instance is created at startup and closed at shutdown.
    """

    def __init__(
        self,
        config: FirestoreConfig | None = None,
        client: firestore.Client | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Firestore configuration
            client: Pre-built Firestore client (created lazily if not provided)
        """
        self.config = config or FirestoreConfig()
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def close(self) -> None:
        """Release the underlying Firestore client."""
        if self._client is not None:
            logger.info("Closing Firestore client")
            self._client.close()
            self._client = None

    def fetch_all(self) -> list[Sighting]:
        """Fetch every sighting record.

        This method performs database I/O.

        Returns:
            Sightings, newest first (including ones without coordinates)

        Raises:
            StoreError: If the read fails
        """
        logger.info("Fetching all sightings from Firestore")

        try:
            docs = list(self._collection().stream())
        except Exception as e:
            logger.error("Failed to fetch sightings: %s", str(e))
            raise StoreError(f"Failed to fetch sightings: {e}") from e

        sightings = parse_sightings([(doc.id, doc.to_dict()) for doc in docs])
        logger.info("Fetched %d sightings from Firestore", len(sightings))
        return sightings

    def fetch_by_device(self, device_id: str) -> list[Sighting]:
        """Fetch the sightings reported from one device, newest first.

        Raises:
            StoreError: If the read fails
        """
        logger.info("Fetching sightings reported by device %s", device_id)

        try:
            docs = list(
                self._collection()
                .where(filter=FieldFilter("user_id", "==", device_id))
                .stream()
            )
        except Exception as e:
            logger.error("Failed to fetch device sightings: %s", str(e))
            raise StoreError(f"Failed to fetch your reports: {e}") from e

        return parse_sightings([(doc.id, doc.to_dict()) for doc in docs])

    def find_duplicates(self, name: str, device_id: str) -> list[Sighting]:
        """Find sightings with this name reported from this device.

        Raises:
            StoreError: If the read fails
        """
        try:
            docs = list(
                self._collection()
                .where(filter=FieldFilter("nombre", "==", name.strip()))
                .where(filter=FieldFilter("user_id", "==", device_id))
                .limit(1)
                .stream()
            )
        except Exception as e:
            logger.error("Failed to check for duplicates: %s", str(e))
            raise StoreError(f"Failed to check for duplicates: {e}") from e

        return parse_sightings([(doc.id, doc.to_dict()) for doc in docs])

    def insert(self, report: SightingReport, check_duplicates: bool = True) -> str:
        """Insert a new sighting record.

        Args:
            report: The report to store
            check_duplicates: Reject the report if this device already sent the name

        Returns:
            ID of the new record

        Raises:
            DuplicateSubmissionError: If this device already reported the name
            StoreError: If the write fails
        """
        if check_duplicates and self.find_duplicates(report.name, report.device_id):
            logger.warning(
                "Rejecting duplicate report '%s' from device %s",
                report.name,
                report.device_id,
            )
            raise DuplicateSubmissionError(report.name, report.device_id)

        logger.info("Inserting sighting '%s'", report.name)

        try:
            _, doc_ref = self._collection().add(report.to_record())
        except Exception as e:
            logger.error("Failed to insert sighting: %s", str(e))
            raise StoreError(f"Failed to submit report: {e}") from e

        logger.info("Inserted sighting %s", doc_ref.id)
        return doc_ref.id

    def delete(self, sighting_id: str) -> None:
        """Delete a sighting record by ID.

        Raises:
            StoreError: If the delete fails
        """
        logger.info("Deleting sighting %s", sighting_id)

        try:
            self._collection().document(str(sighting_id)).delete()
        except Exception as e:
            logger.error("Failed to delete sighting %s: %s", sighting_id, str(e))
            raise StoreError(f"Failed to delete report: {e}") from e

    def subscribe_inserts(
        self,
        on_insert: Callable[[Sighting], None],
        on_initial: Callable[[list[Sighting]], None] | None = None,
    ) -> FeedWatch:
        """Watch the collection for newly added records.

        The first snapshot Firestore delivers holds every existing record; it
        goes to `on_initial` as one list instead of through `on_insert`.
        Records added afterwards reach `on_insert` one by one. Both callbacks
        run on the same Firestore background thread, so no insert is
        delivered before the initial list.

        Raises:
            StoreError: If the watch cannot be started
        """
        initial = threading.Event()

        def on_snapshot(docs: Any, changes: Any, _read_time: Any) -> None:
            if not initial.is_set():
                initial.set()
                records = {doc.id: doc for doc in docs}
                for change in changes:
                    if change.type.name == "ADDED":
                        records.setdefault(change.document.id, change.document)
                sightings = parse_sightings(
                    [(doc_id, doc.to_dict()) for doc_id, doc in records.items()]
                )
                logger.info("Sighting watch started with %d records", len(sightings))
                if on_initial is not None:
                    try:
                        on_initial(sightings)
                    except Exception:
                        logger.exception("Initial snapshot handler failed")
                return

            for change in changes:
                if change.type.name != "ADDED":
                    continue
                sighting = parse_sighting(change.document.id, change.document.to_dict())
                if sighting is None:
                    logger.warning("Ignoring unusable record %s", change.document.id)
                    continue
                try:
                    on_insert(sighting)
                except Exception:
                    logger.exception("Insert handler failed for %s", sighting.id)

        logger.info("Subscribing to inserts on %s", self.config.collection)

        try:
            watch = self._collection().on_snapshot(on_snapshot)
        except Exception as e:
            logger.error("Failed to subscribe to sightings: %s", str(e))
            raise StoreError(f"Failed to subscribe to sightings: {e}") from e

        return FeedWatch(watch)
