"""Pydantic schemas for loan requests as seen by the matching API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from lendmatch.core.enums import LoanMatchStatus, LoanStatus


class PaymentScheduleItemResponse(BaseModel):
    """One installment of a loan's repayment schedule."""

    id: UUID
    due_date: date
    amount: Decimal
    principal_amount: Optional[Decimal] = None
    interest_amount: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class LoanSummary(BaseModel):
    """Request details shown to lenders alongside an offer."""

    id: UUID
    amount: Decimal
    currency: str
    country: Optional[str] = None
    state: Optional[str] = None
    loan_type: Optional[str] = None
    purpose: Optional[str] = None
    total_installments: int

    model_config = ConfigDict(from_attributes=True)


class LoanMatchStateResponse(LoanSummary):
    """Loan match state, lender reference and repayment figures."""

    borrower_id: UUID
    status: LoanStatus
    match_status: LoanMatchStatus
    match_attempts: int
    current_match_id: Optional[UUID] = None

    # Assigned lender
    lender_user_id: Optional[UUID] = None
    business_lender_id: Optional[UUID] = None
    lender_name: Optional[str] = None

    # Repayment figures
    interest_rate: Optional[Decimal] = None
    total_interest: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    repayment_amount: Optional[Decimal] = None
    amount_remaining: Optional[Decimal] = None
    matched_at: Optional[datetime] = None
    auto_matched: bool = False

    schedule: list[PaymentScheduleItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
