"""Match record domain model: one lender offer per candidate per matching round."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lendmatch.core.enums import MatchRecordStatus
from lendmatch.db.base import BaseModel, UTCDateTime, enum_values


class MatchRecord(BaseModel):
    """
    Offer of a loan to one ranked candidate lender.

    ``attempt`` numbers the matching round the record belongs to; a loan may
    be matched again after a round ends without acceptance.
    """

    __tablename__ = "loan_matches"
    __table_args__ = (
        UniqueConstraint(
            "loan_id",
            "lender_preference_id",
            "attempt",
            name="uq_loan_matches_loan_lender_attempt",
        ),
    )

    # Foreign Keys
    loan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("loan_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lender_preference_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("lender_preferences.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Owner reference, denormalised for lender-side queries
    lender_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )
    lender_business_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )

    # Ranking
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    match_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    match_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # Rate resolved at match time (tier policy or default preferences)
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    # Offer state
    status: Mapped[MatchRecordStatus] = mapped_column(
        SQLEnum(MatchRecordStatus, name="match_record_status", values_callable=enum_values),
        nullable=False,
        default=MatchRecordStatus.PENDING,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    was_auto_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    loan: Mapped["LoanRequest"] = relationship("LoanRequest", lazy="selectin")
    lender: Mapped["LenderPreference"] = relationship("LenderPreference", lazy="selectin")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def __repr__(self) -> str:
        return (
            f"<MatchRecord(id={self.id}, loan_id={self.loan_id}, rank={self.match_rank}, "
            f"score={self.match_score}, status={self.status.value})>"
        )
