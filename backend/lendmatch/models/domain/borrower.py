"""Read-only borrower snapshot maintained by the trust and loan services."""

import uuid
from typing import Optional

from sqlalchemy import Enum as SQLEnum, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lendmatch.core.enums import TrustTier
from lendmatch.db.base import BaseModel, enum_values


class BorrowerProfile(BaseModel):
    """Trust tier, completed-loan count and contact details of a borrower."""

    __tablename__ = "borrower_profiles"

    borrower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, unique=True, index=True
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    trust_tier: Mapped[TrustTier] = mapped_column(
        SQLEnum(TrustTier, name="trust_tier", values_callable=enum_values),
        nullable=False,
        default=TrustTier.TIER_1,
    )
    completed_loans: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_first_time_borrower(self) -> bool:
        return (self.completed_loans or 0) == 0

    def __repr__(self) -> str:
        return (
            f"<BorrowerProfile(borrower_id={self.borrower_id}, tier={self.trust_tier.value}, "
            f"completed_loans={self.completed_loans})>"
        )
