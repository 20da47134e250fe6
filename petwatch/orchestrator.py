"""Orchestrator - Wires Functional Core and Imperative Shell.

AlertSession owns the session state (last known position, working sighting
set, notified set) and connects the two event sources to the proximity
evaluator:

- location updates evaluate the whole working set against the new position
- feed inserts evaluate the single new sighting against the last position

Both paths may run at the same time on different threads. Each one writes its
own input before reading the other's, so whichever runs second sees both the
position and the sighting; NotifiedSet.claim() keeps the two from alerting
twice.

The feed hands over its full record set on every connect (handle_resync)
before any insert from that connection, so startup and reconnects never drop
an insert in favour of an older snapshot.
"""

import logging
import threading
from dataclasses import dataclass, field

from petwatch.core.config import Config
from petwatch.core.dedup import NotifiedSet
from petwatch.core.errors import PermissionDeniedError
from petwatch.core.geo import Coordinate
from petwatch.core.proximity import NotificationIntent, evaluate
from petwatch.core.sighting import Sighting
from petwatch.core.state import CurrentValue, SightingSet
from petwatch.shell.firestore_client import FirestoreConfig, SightingStore
from petwatch.shell.location_stream import (
    HttpLocationProvider,
    LocationProvider,
    LocationStreamAdapter,
    fetch_initial_position,
)
from petwatch.shell.notification_client import AlertDispatcher, NotificationClient
from petwatch.shell.sighting_feed import SightingFeedAdapter
from petwatch.shell.streams import Subscription


logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """Result of one proximity evaluation pass.

    Attributes:
        trigger: What caused the pass (startup, position, insert, resync)
        sightings_evaluated: Number of sightings checked
        intents: Notification intents produced
        delivered: Intents whose notification was shown
        failed: Intents whose notification could not be delivered
    """
    trigger: str
    sightings_evaluated: int
    intents: list[NotificationIntent] = field(default_factory=list)
    delivered: list[NotificationIntent] = field(default_factory=list)
    failed: list[NotificationIntent] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """Human-readable summary of the pass."""
        return (
            f"{self.trigger}: checked {self.sightings_evaluated} sightings, "
            f"{len(self.intents)} alerts, "
            f"{len(self.delivered)} delivered, "
            f"{len(self.failed)} failed"
        )


class AlertSession:
    """Long-lived proximity alerting session.

    This class wires together:
    - Sighting store (initial read, insert feed)
    - Location provider (initial fix, watch stream)
    - Core functions (proximity evaluation, de-duplication)
    - Alert dispatcher (notifications)
    """

    def __init__(
        self,
        config: Config,
        store: SightingStore | None = None,
        location_provider: LocationProvider | None = None,
        dispatcher: AlertDispatcher | None = None,
        location_stream: LocationStreamAdapter | None = None,
        sighting_feed: SightingFeedAdapter | None = None,
        notified: NotifiedSet | None = None,
    ) -> None:
        """Initialize session with configuration.

        Args:
            config: Application configuration
            store: Sighting store (created if not provided)
            location_provider: Location provider (created if not provided)
            dispatcher: Alert dispatcher (created if not provided)
            location_stream: Location watch adapter (created if not provided)
            sighting_feed: Sighting feed adapter (created if not provided)
            notified: Notified set (empty if not provided)
        """
        self.config = config
        self.store = store or SightingStore(
            FirestoreConfig(
                project_id=config.firestore_project,
                database=config.firestore_database,
                collection=config.firestore_collection,
            )
        )
        self.location_provider = location_provider or HttpLocationProvider(
            config.location.endpoint_url,
            accuracy=config.location.accuracy,
        )
        self.dispatcher = dispatcher or AlertDispatcher(
            NotificationClient(
                config.notification_webhook_url,
                timeout=config.notification_timeout_seconds,
            )
        )
        self.location_stream = location_stream or LocationStreamAdapter(
            self.location_provider,
            distance_interval_m=config.location.distance_interval_m,
            poll_interval_seconds=config.location.poll_interval_seconds,
        )
        self.sighting_feed = sighting_feed or SightingFeedAdapter(
            self.store,
            backoff=config.feed_backoff,
        )

        self.notified = notified or NotifiedSet()
        self.position: CurrentValue[Coordinate] = CurrentValue()
        self.sightings = SightingSet()
        self.location_available = True
        self.feed_available = True
        self.errors: list[str] = []

        self._subscriptions: list[Subscription] = []
        self._lifecycle_lock = threading.Lock()
        self._started = False
        self._stopped = False
        self._synced = threading.Event()
        self._startup_result: EvaluationResult | None = None

    def start(self) -> EvaluationResult:
        """Load initial state and subscribe to both event sources.

        The initial position read and the wait for the feed's first record
        set are each bounded by config.initial_fetch_timeout_seconds; running
        out of time leaves that part of the state empty until the source
        delivers. A permission denial turns off location for the session.

        Returns:
            Result of the startup evaluation
        """
        with self._lifecycle_lock:
            if self._started:
                raise RuntimeError("AlertSession already started")
            self._started = True

        timeout = self.config.initial_fetch_timeout_seconds

        try:
            position = fetch_initial_position(self.location_provider, timeout)
        except PermissionDeniedError as e:
            self.handle_location_error(e)
            position = None
        if position is not None:
            self.position.set(position)
        elif self.location_available:
            logger.info("No initial position; waiting for location updates")

        subscriptions = [
            self.sighting_feed.subscribe(
                self.handle_insert,
                on_resync=self.handle_resync,
                on_error=self.handle_feed_error,
            )
        ]
        if self.location_available:
            subscriptions.append(
                self.location_stream.subscribe(
                    self.handle_position,
                    on_error=self.handle_location_error,
                )
            )
        with self._lifecycle_lock:
            self._subscriptions.extend(subscriptions)
            stopped = self._stopped
        if stopped:
            for subscription in subscriptions:
                subscription.unsubscribe()

        if self._synced.wait(timeout):
            result = self._startup_result
        else:
            self.errors.append("Could not load sightings; showing none until the feed recovers")
            result = EvaluationResult(trigger="startup", sightings_evaluated=0)

        logger.info("Alert session started: %s", result.summary)
        return result

    def handle_position(self, coordinate: Coordinate) -> EvaluationResult:
        """Evaluate every known sighting against a new user position."""
        self.position.set(coordinate)
        return self._evaluate("position", self.sightings.snapshot(), coordinate)

    def handle_insert(self, sighting: Sighting) -> EvaluationResult:
        """Add a new sighting and alert right away if the user is near it."""
        if not self.sightings.add(sighting):
            logger.debug("Sighting %s already in working set", sighting.id)
        return self._evaluate("insert", [sighting], self._live_position())

    def handle_resync(self, sightings: list[Sighting]) -> EvaluationResult:
        """Replace the working set with the feed's full record set and re-evaluate.

        Called on every feed connect; the first call completes startup.
        """
        first = not self._synced.is_set()
        self.sightings.replace_all(sightings)
        self.feed_available = True
        if first:
            logger.info("Loaded %d sightings", len(sightings))

        result = self._evaluate(
            "startup" if first else "resync",
            sightings,
            self._live_position(),
        )
        if first:
            self._startup_result = result
            self._synced.set()
        return result

    def handle_location_error(self, error: Exception) -> None:
        """Degrade to "no live evaluation" after the location stream ended."""
        self.location_available = False
        if isinstance(error, PermissionDeniedError):
            message = "Location permission denied; nearby alerts are off"
        else:
            message = f"Location unavailable: {error}"
        logger.error(message)
        self.errors.append(message)

    def handle_feed_error(self, error: Exception) -> None:
        """Keep serving the last known sightings after the feed gave up."""
        self.feed_available = False
        message = f"Live sighting updates stopped: {error}"
        logger.error(message)
        self.errors.append(message)

    def stop(self, close_store: bool = True) -> None:
        """Unsubscribe from both sources. Safe to call more than once."""
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
            subscriptions, self._subscriptions = self._subscriptions, []

        for subscription in subscriptions:
            subscription.unsubscribe()

        if close_store:
            self.store.close()

        logger.info(
            "Alert session stopped (%d sightings notified this session)",
            len(self.notified),
        )

    def _evaluate(
        self,
        trigger: str,
        sightings: list[Sighting],
        position: Coordinate | None,
    ) -> EvaluationResult:
        intents = evaluate(position, sightings, self.config.alert_radius_m, self.notified)
        result = EvaluationResult(trigger=trigger, sightings_evaluated=len(sightings))

        for intent in intents:
            result.intents.append(intent)
            response = self.dispatcher.dispatch(intent)
            if response.success:
                result.delivered.append(intent)
            else:
                result.failed.append(intent)

        if intents:
            logger.info(result.summary)
        else:
            logger.debug(result.summary)

        return result

    def _live_position(self) -> Coordinate | None:
        # A stale position is not used once location has been turned off
        if not self.location_available:
            return None
        return self.position.get()
