"""Loan request domain models: the funding request and its payment schedule."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lendmatch.core.enums import LoanMatchStatus, LoanStatus
from lendmatch.db.base import BaseModel, UTCDateTime, enum_values


class LoanRequest(BaseModel):
    """
    A borrower's funding request as seen by the matching engine.

    Created by the loan application flow in ``unmatched``. The engine owns
    ``match_status``, the lender reference and the repayment figures.
    """

    __tablename__ = "loan_requests"
    __table_args__ = (
        CheckConstraint(
            "lender_user_id IS NULL OR business_lender_id IS NULL",
            name="ck_loan_requests_single_lender",
        ),
    )

    # Borrower
    borrower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )

    # Request
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    loan_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    purpose: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Lifecycle
    status: Mapped[LoanStatus] = mapped_column(
        SQLEnum(LoanStatus, name="loan_status", values_callable=enum_values),
        nullable=False,
        default=LoanStatus.REQUESTED,
    )
    match_status: Mapped[LoanMatchStatus] = mapped_column(
        SQLEnum(LoanMatchStatus, name="loan_match_status", values_callable=enum_values),
        nullable=False,
        default=LoanMatchStatus.UNMATCHED,
        index=True,
    )
    match_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_match_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )

    # Assigned lender (individual OR business, never both)
    lender_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )
    business_lender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )
    lender_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Repayment figures, set on assignment
    interest_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    total_interest: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    repayment_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )
    amount_remaining: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )
    matched_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    auto_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    schedule: Mapped[list["PaymentScheduleItem"]] = relationship(
        "PaymentScheduleItem",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="PaymentScheduleItem.due_date",
        lazy="selectin",
    )

    @property
    def has_lender(self) -> bool:
        """True once either lender reference is set."""
        return self.lender_user_id is not None or self.business_lender_id is not None

    def __repr__(self) -> str:
        return (
            f"<LoanRequest(id={self.id}, amount={self.amount}, "
            f"match_status={self.match_status.value if self.match_status else None})>"
        )


class PaymentScheduleItem(BaseModel):
    """One installment of a loan's repayment schedule."""

    __tablename__ = "payment_schedule"

    loan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("loan_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    principal_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )
    interest_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )

    loan: Mapped["LoanRequest"] = relationship("LoanRequest", back_populates="schedule")

    def __repr__(self) -> str:
        return f"<PaymentScheduleItem(loan_id={self.loan_id}, due={self.due_date}, amount={self.amount})>"
