"""Notification Client - Imperative Shell.

This module delivers local notifications by posting them to a notification
webhook (the device's notification bridge). All I/O is contained here;
message formatting is in the core module.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any

import requests

from petwatch.core.formatter import format_notification_payload
from petwatch.core.proximity import NotificationIntent


logger = logging.getLogger(__name__)


# Default timeout for notification requests (seconds)
DEFAULT_TIMEOUT = 10


@dataclass
class NotificationResponse:
    """Response from the notification webhook.

    Attributes:
        success: Whether the notification was accepted
        status_code: HTTP status code (0 when no response was received)
        error: Error message if failed
    """
    success: bool
    status_code: int
    error: str | None = None


class NotificationClient:
    """Client for showing notifications via a webhook.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(self, webhook_url: str, timeout: int = DEFAULT_TIMEOUT) -> None:
        """Initialize notification client.

        Args:
            webhook_url: Notification webhook URL
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, payload: dict[str, Any]) -> NotificationResponse:
        """Show a notification immediately.

        This method performs HTTP I/O.

        Args:
            payload: Notification payload (title, body, data)

        Returns:
            NotificationResponse indicating success or failure
        """
        if not self.webhook_url:
            return NotificationResponse(
                success=False,
                status_code=0,
                error="No notification webhook configured",
            )

        try:
            response = requests.post(
                self.webhook_url,
                json=payload,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        except requests.Timeout:
            logger.error("Notification request timed out")
            return NotificationResponse(
                success=False,
                status_code=0,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Notification request failed: %s", str(e))
            return NotificationResponse(
                success=False,
                status_code=0,
                error=str(e),
            )

        if response.status_code in (401, 403):
            logger.warning("Notification permission denied (%d)", response.status_code)
            return NotificationResponse(
                success=False,
                status_code=response.status_code,
                error="Notification permission denied",
            )

        if not response.ok:
            logger.warning(
                "Notification webhook returned %d - %s",
                response.status_code,
                response.text,
            )
            return NotificationResponse(
                success=False,
                status_code=response.status_code,
                error=response.text,
            )

        return NotificationResponse(success=True, status_code=response.status_code)


class AlertDispatcher:
    """Turns notification intents into shown notifications.

    Delivery is fire-and-forget: a failed delivery is logged and is not
    retried, and it never un-marks the sighting in the notified set. Each
    sighting is shown at most once per dispatcher.
    """

    def __init__(self, client: NotificationClient) -> None:
        self.client = client
        self._dispatched: set[str] = set()
        self._lock = threading.Lock()

    def dispatch(self, intent: NotificationIntent) -> NotificationResponse:
        """Show the notification for an intent.

        Args:
            intent: Notification intent from the proximity evaluator

        Returns:
            NotificationResponse (success=False for repeats and failures)
        """
        with self._lock:
            if intent.sighting_id in self._dispatched:
                logger.debug("Sighting %s already dispatched", intent.sighting_id)
                return NotificationResponse(
                    success=False,
                    status_code=0,
                    error="Already dispatched",
                )
            self._dispatched.add(intent.sighting_id)

        response = self.client.send(format_notification_payload(intent))

        if response.success:
            logger.info(
                "Notified about %s (%s, %.0f m)",
                intent.sighting_id,
                intent.name,
                intent.distance_m,
            )
        else:
            logger.warning(
                "Notification for %s not delivered: %s",
                intent.sighting_id,
                response.error,
            )

        return response
