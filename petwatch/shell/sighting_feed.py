"""Sighting Feed Adapter - Imperative Shell.

This module keeps a live subscription to newly inserted sightings. Every time
the watch connects (the first time and after each drop) the full record set
from its initial snapshot is handed to `on_resync`, so inserts made before the
watch was live or while it was disconnected are repaired. Reconnects use
bounded exponential backoff.
"""

import logging
import threading
from typing import Callable

from petwatch.core.backoff import BackoffPolicy, compute_backoff_delay, should_retry
from petwatch.core.errors import StoreError
from petwatch.core.sighting import Sighting
from petwatch.core.state import CurrentValue
from petwatch.shell.firestore_client import FeedWatch, SightingStore
from petwatch.shell.streams import Subscription


logger = logging.getLogger(__name__)


# How often the supervisor checks that the watch is still streaming (seconds)
DEFAULT_HEALTH_CHECK_INTERVAL = 5.0


def _close_watch(watch: FeedWatch | None) -> None:
    if watch is not None:
        watch.unsubscribe()


class SightingFeedAdapter:
    """Delivers newly inserted sightings and repairs gaps after reconnects."""

    def __init__(
        self,
        store: SightingStore,
        backoff: BackoffPolicy | None = None,
        health_check_interval: float = DEFAULT_HEALTH_CHECK_INTERVAL,
    ) -> None:
        """Initialize the adapter.

        Args:
            store: Sighting store to watch
            backoff: Reconnect policy
            health_check_interval: Seconds between watch liveness checks
        """
        self.store = store
        self.backoff = backoff or BackoffPolicy()
        self.health_check_interval = health_check_interval

    def subscribe(
        self,
        on_insert: Callable[[Sighting], None],
        on_resync: Callable[[list[Sighting]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        """Start delivering inserts.

        Args:
            on_insert: Called with each newly inserted sighting
            on_resync: Called with the full record set on every connect,
                before any insert from that connection
            on_error: Called once if reconnect attempts are exhausted

        Returns:
            Subscription handle; unsubscribe() stops the feed
        """
        subscription = Subscription("sighting-feed")
        current: CurrentValue[FeedWatch] = CurrentValue()
        subscription.add_cleanup(lambda: _close_watch(current.get()))

        thread = threading.Thread(
            target=self._supervise,
            args=(subscription, current, on_insert, on_resync, on_error),
            name="sighting-feed",
            daemon=True,
        )
        thread.start()
        return subscription

    def _connect(
        self,
        subscription: Subscription,
        current: CurrentValue[FeedWatch],
        on_insert: Callable[[Sighting], None],
        on_resync: Callable[[list[Sighting]], None] | None,
    ) -> FeedWatch:
        def handle_initial(sightings: list[Sighting]) -> None:
            logger.info("Sighting feed connected with %d sightings", len(sightings))
            if on_resync is not None:
                subscription.deliver(on_resync, sightings)

        watch = self.store.subscribe_inserts(
            lambda sighting: subscription.deliver(on_insert, sighting),
            on_initial=handle_initial,
        )
        current.set(watch)
        # Unsubscribed while connecting; the cleanup may have missed this watch
        if not subscription.active:
            watch.unsubscribe()
        return watch

    def _supervise(
        self,
        subscription: Subscription,
        current: CurrentValue[FeedWatch],
        on_insert: Callable[[Sighting], None],
        on_resync: Callable[[list[Sighting]], None] | None,
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        watch: FeedWatch | None = None
        attempt = 0

        while subscription.active:
            if watch is None:
                try:
                    watch = self._connect(subscription, current, on_insert, on_resync)
                    attempt = 0
                except StoreError as e:
                    attempt += 1
                    if not self._wait_before_retry(subscription, attempt, e, on_error):
                        return
                    continue

            if subscription.wait(self.health_check_interval):
                return

            if not watch.is_active:
                logger.warning("Sighting feed disconnected")
                watch.unsubscribe()
                watch = None
                attempt += 1
                error = StoreError("Sighting feed disconnected")
                if not self._wait_before_retry(subscription, attempt, error, on_error):
                    return

    def _wait_before_retry(
        self,
        subscription: Subscription,
        attempt: int,
        error: Exception,
        on_error: Callable[[Exception], None] | None,
    ) -> bool:
        """Sleep before reconnect attempt `attempt`.

        Returns:
            False if the feed should stop (exhausted or unsubscribed)
        """
        if not should_retry(attempt, self.backoff):
            logger.error(
                "Giving up on sighting feed after %d attempts: %s",
                attempt - 1,
                error,
            )
            if on_error is not None:
                subscription.deliver(on_error, error)
            subscription.unsubscribe()
            return False

        delay = compute_backoff_delay(attempt, self.backoff)
        logger.warning(
            "Sighting feed unavailable (%s), reconnect attempt %d in %.1fs",
            error,
            attempt,
            delay,
        )
        return not subscription.wait(delay)
