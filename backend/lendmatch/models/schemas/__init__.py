"""Pydantic schemas for API validation and serialization."""

from lendmatch.models.schemas.loan import (
    LoanMatchStateResponse,
    LoanSummary,
    PaymentScheduleItemResponse,
)
from lendmatch.models.schemas.match import (
    ExpirySweepResponse,
    LenderOfferResponse,
    LenderRejectionResponse,
    MatchActionRequest,
    MatchingOutcomeResponse,
    MatchRecordResponse,
    MatchStatusResponse,
    RematchRequest,
    StartMatchingRequest,
)

__all__ = [
    # Loan schemas
    "LoanMatchStateResponse",
    "LoanSummary",
    "PaymentScheduleItemResponse",
    # Match schemas
    "ExpirySweepResponse",
    "LenderOfferResponse",
    "LenderRejectionResponse",
    "MatchActionRequest",
    "MatchRecordResponse",
    "MatchStatusResponse",
    "MatchingOutcomeResponse",
    "RematchRequest",
    "StartMatchingRequest",
]
