"""Subscription handles and bounded one-shot calls - Imperative Shell.

Both stream adapters hand out a Subscription. Callbacks are delivered through
Subscription.deliver(), which holds a re-entrant lock for the duration of the
callback; unsubscribe() takes the same lock, so once it returns no callback is
running or will run. A callback may unsubscribe its own subscription.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, TypeVar


logger = logging.getLogger(__name__)


T = TypeVar("T")


class Subscription:
    """Handle for a long-lived callback subscription."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._stopped = threading.Event()
        self._delivery_lock = threading.RLock()
        self._cleanups: list[Callable[[], None]] = []
        self._cleanup_lock = threading.Lock()

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def add_cleanup(self, cleanup: Callable[[], None]) -> None:
        """Register a callable run once when the subscription ends.

        Runs immediately if the subscription already ended.
        """
        with self._cleanup_lock:
            if self.active:
                self._cleanups.append(cleanup)
                return
        self._run_cleanup(cleanup)

    def deliver(self, callback: Callable[..., Any], *args: Any) -> bool:
        """Invoke a callback unless the subscription has ended.

        Exceptions raised by the callback are logged, not propagated.

        Returns:
            True if the callback ran
        """
        with self._delivery_lock:
            if not self.active:
                return False
            try:
                callback(*args)
            except Exception:
                logger.exception("Callback for %s subscription failed", self.name)
            return True

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds, waking early on unsubscribe.

        Returns:
            True if the subscription has ended
        """
        return self._stopped.wait(timeout)

    def unsubscribe(self) -> None:
        """End the subscription. Safe to call any number of times."""
        if self._stopped.is_set():
            return
        self._stopped.set()

        # Wait for an in-flight delivery to finish
        with self._delivery_lock:
            pass

        with self._cleanup_lock:
            cleanups, self._cleanups = self._cleanups, []

        for cleanup in cleanups:
            self._run_cleanup(cleanup)

        logger.info("Unsubscribed from %s", self.name)

    def _run_cleanup(self, cleanup: Callable[[], None]) -> None:
        try:
            cleanup()
        except Exception as e:
            logger.warning("Cleanup for %s subscription failed: %s", self.name, e)


def call_with_timeout(
    func: Callable[[], T],
    timeout_seconds: float,
    description: str,
) -> T:
    """Run a blocking call with an upper bound on how long we wait for it.

    The call keeps running in a worker thread after a timeout; its result is
    discarded.

    Raises:
        TimeoutError: If the call did not finish in time
        Exception: Whatever the call itself raised
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=description)
    try:
        future = executor.submit(func)
        try:
            return future.result(timeout=timeout_seconds)
        except FutureTimeoutError:
            raise TimeoutError(
                f"{description} did not complete within {timeout_seconds}s"
            ) from None
    finally:
        executor.shutdown(wait=False)
