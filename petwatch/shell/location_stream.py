"""Location Stream Adapter - Imperative Shell.

This module reads the user's position from a location provider, either once
or continuously in watch mode, and feeds each meaningful move to a callback.

Permission denial ends the stream: it is reported once and never retried.
Other provider failures are logged and the next poll proceeds.
"""

import logging
import threading
from typing import Callable, Protocol

import requests

from petwatch.core.errors import LocationUnavailableError, PermissionDeniedError
from petwatch.core.geo import Coordinate, has_moved
from petwatch.shell.streams import Subscription, call_with_timeout


logger = logging.getLogger(__name__)


# Default timeout for position requests (seconds)
DEFAULT_TIMEOUT = 10


class LocationProvider(Protocol):
    """Source of user positions."""

    def get_current_position(self) -> Coordinate:
        """One-shot position fix."""
        ...

    def get_position_update(self) -> Coordinate:
        """Latest position while watching."""
        ...


class HttpLocationProvider:
    """Location provider backed by a JSON position endpoint.

    The endpoint answers GET requests with
    {"latitude": float, "longitude": float, "accuracy": float}.
    """

    def __init__(
        self,
        endpoint_url: str,
        accuracy: str = "balanced",
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize location provider.

        Args:
            endpoint_url: Position endpoint URL
            accuracy: Accuracy tier requested from the device
            timeout: Request timeout in seconds
        """
        self.endpoint_url = endpoint_url
        self.accuracy = accuracy
        self.timeout = timeout

    def _fetch(self, mode: str) -> Coordinate:
        if not self.endpoint_url:
            raise LocationUnavailableError("No location endpoint configured")

        try:
            response = requests.get(
                self.endpoint_url,
                params={"accuracy": self.accuracy, "mode": mode},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise LocationUnavailableError("Position request timed out") from e
        except requests.RequestException as e:
            raise LocationUnavailableError(f"Position request failed: {e}") from e

        if response.status_code in (401, 403):
            raise PermissionDeniedError("location")

        if response.status_code != 200:
            raise LocationUnavailableError(
                f"Position endpoint returned {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise LocationUnavailableError("Position endpoint returned invalid JSON") from e

        coordinate = Coordinate.from_optional(data.get("latitude"), data.get("longitude"))
        if coordinate is None:
            raise LocationUnavailableError(f"Position endpoint returned no fix: {data}")

        logger.debug(
            "Position fix %.6f,%.6f (accuracy %s m)",
            coordinate.latitude,
            coordinate.longitude,
            data.get("accuracy"),
        )
        return coordinate

    def get_current_position(self) -> Coordinate:
        return self._fetch("current")

    def get_position_update(self) -> Coordinate:
        return self._fetch("watch")


def fetch_initial_position(
    provider: LocationProvider,
    timeout_seconds: float,
) -> Coordinate | None:
    """Fetch the user's position once, waiting at most `timeout_seconds`.

    Timeouts and transient failures are logged and reported as "no location
    yet". Permission denial is terminal and is raised to the caller.

    Returns:
        The position, or None on timeout or failure

    Raises:
        PermissionDeniedError: If location access was denied
    """
    try:
        return call_with_timeout(
            provider.get_current_position,
            timeout_seconds,
            "initial-position",
        )
    except TimeoutError as e:
        logger.warning("Initial position unavailable: %s", e)
    except LocationUnavailableError as e:
        logger.warning("Initial position unavailable: %s", e)
    return None


class LocationStreamAdapter:
    """Watches the user's position and reports meaningful moves."""

    def __init__(
        self,
        provider: LocationProvider,
        distance_interval_m: float = 10.0,
        poll_interval_seconds: float = 5.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            provider: Location provider to poll
            distance_interval_m: Minimum movement between delivered updates
            poll_interval_seconds: Delay between polls
        """
        self.provider = provider
        self.distance_interval_m = distance_interval_m
        self.poll_interval_seconds = poll_interval_seconds

    def subscribe(
        self,
        on_update: Callable[[Coordinate], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        """Start watching the position.

        Args:
            on_update: Called with each position that moved far enough
            on_error: Called once if the stream ends because of permission denial

        Returns:
            Subscription handle; unsubscribe() stops the watch
        """
        subscription = Subscription("location")
        thread = threading.Thread(
            target=self._run,
            args=(subscription, on_update, on_error),
            name="location-stream",
            daemon=True,
        )
        thread.start()
        logger.info(
            "Watching location (interval %.0f m, poll %.1f s)",
            self.distance_interval_m,
            self.poll_interval_seconds,
        )
        return subscription

    def _run(
        self,
        subscription: Subscription,
        on_update: Callable[[Coordinate], None],
        on_error: Callable[[Exception], None] | None,
    ) -> None:
        last_delivered: Coordinate | None = None

        while subscription.active:
            try:
                position = self.provider.get_position_update()
            except PermissionDeniedError as e:
                logger.error("Location watch stopped: %s", e)
                if on_error is not None:
                    subscription.deliver(on_error, e)
                subscription.unsubscribe()
                return
            except LocationUnavailableError as e:
                logger.warning("Location update unavailable: %s", e)
            except Exception:
                logger.exception("Unexpected location provider failure")
            else:
                if has_moved(last_delivered, position, self.distance_interval_m):
                    if subscription.deliver(on_update, position):
                        last_delivered = position

            if subscription.wait(self.poll_interval_seconds):
                return
