"""Notification transports."""

import logging
from typing import Optional, Protocol

import httpx

from lendmatch.services.notifications.intents import NotificationIntent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers one intent. Implementations may raise; the dispatcher absorbs failures."""

    async def send(self, intent: NotificationIntent) -> None:
        ...


class LoggingNotifier:
    """Writes intents to the log. Used when no webhook is configured."""

    async def send(self, intent: NotificationIntent) -> None:
        logger.info(f"Notification {intent.kind} for loan {intent.loan_id}: {intent.to_payload()}")


class WebhookNotifier:
    """
    Posts each intent as JSON to an external delivery service.

    The receiving service owns templates, email and in-app delivery.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the webhook notifier.

        Args:
            url: Endpoint receiving notification payloads
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def send(self, intent: NotificationIntent) -> None:
        """
        Post one intent.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.url, json=intent.to_payload())
            response.raise_for_status()

        logger.debug(f"Delivered {intent.kind} for loan {intent.loan_id} ({response.status_code})")


def build_notifier(webhook_url: str = "", timeout: float = 10.0) -> Notifier:
    """Webhook transport when a URL is configured, log-only otherwise."""
    if webhook_url:
        return WebhookNotifier(webhook_url, timeout=timeout)
    return LoggingNotifier()
