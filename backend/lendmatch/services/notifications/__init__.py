"""Notification intents, transports and dispatch."""

from .dispatcher import NotificationDispatcher
from .intents import (
    BorrowerNoMatch,
    BorrowerQueued,
    BothPartiesAssigned,
    LenderOffer,
    ManualReviewRequired,
    NotificationIntent,
)
from .notifier import LoggingNotifier, Notifier, WebhookNotifier, build_notifier

__all__ = [
    "BorrowerNoMatch",
    "BorrowerQueued",
    "BothPartiesAssigned",
    "LenderOffer",
    "LoggingNotifier",
    "ManualReviewRequired",
    "NotificationDispatcher",
    "NotificationIntent",
    "Notifier",
    "WebhookNotifier",
    "build_notifier",
]
