"""Best-effort, concurrent delivery of notification intents."""

import asyncio
import logging
from typing import Iterable, Optional

from lendmatch.config import settings
from lendmatch.services.notifications.intents import NotificationIntent
from lendmatch.services.notifications.notifier import Notifier, build_notifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Sends a batch of intents concurrently.

    A failed delivery is logged and otherwise ignored: notifications never
    affect matching state and never raise to the caller.
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or build_notifier(
            settings.NOTIFIER_WEBHOOK_URL,
            timeout=settings.NOTIFIER_TIMEOUT_SECONDS,
        )

    async def dispatch(self, intents: Iterable[NotificationIntent]) -> int:
        """
        Deliver intents.

        Args:
            intents: Intents returned by the matching service

        Returns:
            Number of intents delivered successfully
        """
        batch = list(intents)
        if not batch:
            return 0

        results = await asyncio.gather(
            *(self.notifier.send(intent) for intent in batch),
            return_exceptions=True,
        )

        delivered = 0
        for intent, result in zip(batch, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Failed to deliver {intent.kind} for loan {intent.loan_id}: {result}",
                    exc_info=result,
                )
            else:
                delivered += 1

        logger.info(f"Dispatched {delivered}/{len(batch)} notifications")
        return delivered
