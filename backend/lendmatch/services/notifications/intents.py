"""Notification intents: what the orchestrator wants said, returned as data.

Delivery is a separate, best-effort step (see ``NotificationDispatcher``).
"""

import uuid
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class NotificationIntent:
    """Base intent; every intent concerns one loan."""

    kind: ClassVar[str] = "notification"

    loan_id: uuid.UUID

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation, keyed by field name."""
        payload: dict[str, Any] = {"type": self.kind}
        for item in fields(self):
            payload[item.name] = _jsonable(getattr(self, item.name))
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class BorrowerNoMatch(NotificationIntent):
    """No lender could take the loan; first-time borrowers get tailored copy."""

    kind: ClassVar[str] = "borrower_no_match"

    borrower_id: Optional[uuid.UUID] = None
    is_first_time: bool = False


@dataclass(frozen=True)
class BorrowerQueued(NotificationIntent):
    """The loan was offered to ``match_count`` lenders."""

    kind: ClassVar[str] = "borrower_queued"

    borrower_id: Optional[uuid.UUID] = None
    match_count: int = 0


@dataclass(frozen=True)
class LenderOffer(NotificationIntent):
    """A lender is invited to accept the loan before ``expires_at``."""

    kind: ClassVar[str] = "lender_offer"

    match_id: Optional[uuid.UUID] = None
    lender_preference_id: Optional[uuid.UUID] = None
    lender_email: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    interest_rate: Optional[Decimal] = None
    expires_at: Optional[datetime] = None
    review_url: Optional[str] = None


@dataclass(frozen=True)
class BothPartiesAssigned(NotificationIntent):
    """The loan was assigned; borrower and lender are both told."""

    kind: ClassVar[str] = "both_parties_assigned"

    match_id: Optional[uuid.UUID] = None
    borrower_id: Optional[uuid.UUID] = None
    lender_preference_id: Optional[uuid.UUID] = None
    lender_email: Optional[str] = None
    is_auto_accept: bool = False


@dataclass(frozen=True)
class ManualReviewRequired(NotificationIntent):
    """Auto-accept could not complete; the lender must review the offer by hand."""

    kind: ClassVar[str] = "manual_review_required"

    match_id: Optional[uuid.UUID] = None
    lender_preference_id: Optional[uuid.UUID] = None
    lender_email: Optional[str] = None
    review_url: Optional[str] = None
