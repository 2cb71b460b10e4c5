"""Pydantic schemas for matching requests and results."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lendmatch.core.enums import MatchingOutcomeStatus, MatchRecordStatus
from lendmatch.models.schemas.loan import LoanMatchStateResponse, LoanSummary


# ==================== Request Schemas ====================


class StartMatchingRequest(BaseModel):
    """Schema for starting a matching round."""

    loan_id: UUID


class RematchRequest(BaseModel):
    """Schema for starting a new round after a round ended without a lender."""

    loan_id: UUID


class MatchActionRequest(BaseModel):
    """Schema for a lender's response to an offer."""

    action: Literal["accept", "decline"]
    actor_id: UUID
    decline_reason: Optional[str] = Field(default=None, max_length=1000)


# ==================== Match Record Schemas ====================


class MatchRecordResponse(BaseModel):
    """Schema for a single lender offer."""

    id: UUID
    loan_id: UUID
    lender_preference_id: UUID
    lender_user_id: Optional[UUID] = None
    lender_business_id: Optional[UUID] = None
    attempt: int
    match_rank: int
    match_score: int
    interest_rate: Decimal
    status: MatchRecordStatus
    expires_at: datetime
    responded_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    was_auto_accepted: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LenderOfferResponse(MatchRecordResponse):
    """Schema for an offer as listed to its lender, with the loan details."""

    loan: LoanSummary

    model_config = ConfigDict(from_attributes=True)


class LenderRejectionResponse(BaseModel):
    """Schema for a lender screened out during a round."""

    lender_id: UUID
    stage: str
    reason: str
    message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Outcome Schemas ====================


class MatchingOutcomeResponse(BaseModel):
    """Schema for the result of a matching operation."""

    status: MatchingOutcomeStatus
    loan: LoanMatchStateResponse
    matches: list[MatchRecordResponse] = []
    chosen_match_id: Optional[UUID] = None
    review_url: Optional[str] = None
    notifications: list[str] = Field(
        default_factory=list,
        description="Kinds of the notifications queued for delivery",
    )
    rejections: list[LenderRejectionResponse] = []


class MatchStatusResponse(BaseModel):
    """Schema for a loan's match state and every offer it received."""

    loan: LoanMatchStateResponse
    matches: list[MatchRecordResponse] = []


class ExpirySweepResponse(BaseModel):
    """Schema for the result of an expiry sweep."""

    expired_count: int
    closed_loan_ids: list[UUID] = []
