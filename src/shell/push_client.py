"""Push Gateway Client - Imperative Shell.

This module handles HTTP communication with the push notification
gateway. All I/O is contained here; message formatting is in the core
module.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import requests

from src.core.formatter import NotificationIntent


logger = logging.getLogger(__name__)


# Default timeout for gateway requests (seconds)
DEFAULT_TIMEOUT = 10

# Default number of concurrent sends
DEFAULT_MAX_WORKERS = 8


@dataclass
class PushResponse:
    """Response from the push gateway.

    Attributes:
        recipient_id: User the push was addressed to
        success: Whether the push was accepted
        status_code: HTTP status code
        error: Error message if failed
    """
    recipient_id: str
    success: bool
    status_code: int
    error: str | None = None


def build_payload(
    recipient_id: str,
    message: str,
    metadata: dict[str, Any],
) -> dict[str, Any]:
    """Build the gateway request body.

    The expiration interval is sent alongside the data, not inside it.
    """
    data = {k: v for k, v in metadata.items() if k != "expiration_interval"}
    if message:
        data["alert"] = message

    payload: dict[str, Any] = {
        "where": {"user": recipient_id},
        "data": data,
    }
    if "expiration_interval" in metadata:
        payload["expiration_interval"] = metadata["expiration_interval"]
    return payload


class PushClient:
    """Client for sending push notifications through an HTTP gateway.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        gateway_url: str = "",
        api_key: str = "",
        timeout: int = DEFAULT_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize push client.

        Args:
            gateway_url: URL push payloads are POSTed to
            api_key: Bearer token for the gateway
            timeout: Request timeout in seconds
            max_workers: Concurrent sends in send_many()
        """
        self.gateway_url = gateway_url
        self.api_key = api_key
        self.timeout = timeout
        self.max_workers = max_workers

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def send(
        self,
        recipient_id: str,
        message: str,
        metadata: dict[str, Any],
    ) -> PushResponse:
        """Send one push notification.

        This method performs HTTP I/O. Failures are returned, never
        raised.

        Args:
            recipient_id: User to notify
            message: Alert text (empty for silent pushes)
            metadata: Push data (type, sender, expiration)

        Returns:
            PushResponse indicating success or failure
        """
        if not self.gateway_url:
            logger.error("No push gateway configured, dropping push to %s", recipient_id)
            return PushResponse(
                recipient_id=recipient_id,
                success=False,
                status_code=0,
                error="Push gateway URL not configured",
            )

        logger.info(
            "Sending %s push to %s",
            metadata.get("type", "unknown"),
            recipient_id,
        )

        try:
            response = requests.post(
                self.gateway_url,
                json=build_payload(recipient_id, message, metadata),
                timeout=self.timeout,
                headers=self._headers(),
            )

            if 200 <= response.status_code < 300:
                logger.info("Push sent successfully to %s", recipient_id)
                return PushResponse(
                    recipient_id=recipient_id,
                    success=True,
                    status_code=response.status_code,
                )
            else:
                error_text = response.text
                logger.warning(
                    "Push gateway returned %d for %s - %s",
                    response.status_code,
                    recipient_id,
                    error_text,
                )
                return PushResponse(
                    recipient_id=recipient_id,
                    success=False,
                    status_code=response.status_code,
                    error=error_text,
                )

        except requests.Timeout:
            logger.error("Push gateway request timed out for %s", recipient_id)
            return PushResponse(
                recipient_id=recipient_id,
                success=False,
                status_code=0,
                error="Request timed out",
            )
        except requests.RequestException as e:
            logger.error("Push gateway request failed for %s: %s", recipient_id, str(e))
            return PushResponse(
                recipient_id=recipient_id,
                success=False,
                status_code=0,
                error=str(e),
            )

    def send_intent(self, intent: NotificationIntent) -> PushResponse:
        """Send a notification intent."""
        return self.send(intent.recipient_id, intent.message, intent.metadata)

    def send_many(self, intents: list[NotificationIntent]) -> list[PushResponse]:
        """Send several pushes concurrently.

        Each recipient succeeds or fails on its own.

        Args:
            intents: Notifications to send

        Returns:
            One response per intent, in intent order
        """
        if not intents:
            return []

        if len(intents) == 1 or self.max_workers <= 1:
            return [self.send_intent(intent) for intent in intents]

        workers = min(self.max_workers, len(intents))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.send_intent, intents))
