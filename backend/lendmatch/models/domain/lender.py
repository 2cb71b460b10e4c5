"""Lender preference and tier policy domain models for the matching engine."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lendmatch.core.enums import LenderKind, TrustTier
from lendmatch.db.base import BaseModel, UTCDateTime, enum_values

ZERO = Decimal("0.00")


def _region_codes(codes: Optional[list[str]]) -> frozenset[str]:
    """Country or state codes normalised like the loan's own codes."""
    return frozenset(code.strip().upper() for code in (codes or []))


class LenderReference(NamedTuple):
    """Owner of a lender preference: exactly one of the two ids is set."""

    lender_user_id: Optional[uuid.UUID]
    lender_business_id: Optional[uuid.UUID]


@dataclass(frozen=True)
class LenderCriteria:
    """
    Snapshot of the preference fields the eligibility checks read.

    Attributes:
        min_amount: Smallest loan the lender funds
        max_amount: Default upper bound (tier policies may override it)
        countries: Upper-cased country codes served, empty = everywhere
        states: Upper-cased state codes served, empty = everywhere
        allow_first_time_borrowers: Whether borrowers with no completed loans are accepted
        first_time_borrower_limit: Cap for first-time borrowers, None = resolved max
        supported_loan_types: Lower-cased loan types for business lenders,
            None when loan-type affinity does not apply (individual lenders)
    """

    min_amount: Decimal
    max_amount: Optional[Decimal]
    countries: frozenset[str]
    states: frozenset[str]
    allow_first_time_borrowers: bool
    first_time_borrower_limit: Optional[Decimal]
    supported_loan_types: Optional[frozenset[str]] = None


class LenderPreference(BaseModel):
    """
    Lending preferences and capital pool of one lender.

    Single-table polymorphic base for the two lender variants; use
    ``IndividualLenderPreference`` or ``BusinessLenderPreference``.
    The base has no polymorphic identity, so every loaded row is one of
    the two subclasses. ``owner_reference`` and ``is_acting_user`` are the
    contract each subclass implements.
    ``capital_reserved`` only ever changes through the capital ledger.
    """

    __tablename__ = "lender_preferences"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (business_id IS NULL)",
            name="ck_lender_preferences_single_owner",
        ),
        CheckConstraint(
            "capital_reserved <= capital_pool",
            name="ck_lender_preferences_reserved_within_pool",
        ),
    )

    lender_kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Capital
    capital_pool: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    capital_reserved: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )

    # Behaviour
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    auto_accept: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Default pricing and bounds (used when no tier policies are configured)
    interest_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("10.00")
    )
    min_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    max_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    # Geography, empty list = no restriction
    countries: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    states: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # First-time borrowers
    allow_first_time_borrowers: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    first_time_borrower_limit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(15, 2), nullable=True
    )

    # Contact snapshot for notifications
    lender_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lender_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Funding statistics
    total_loans_funded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount_funded: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    last_loan_assigned_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    # Relationships
    tier_policies: Mapped[list["TierPolicy"]] = relationship(
        "TierPolicy",
        back_populates="lender",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"polymorphic_on": "lender_kind", "with_polymorphic": "*"}

    def capacity(self) -> Decimal:
        """Capital still available for new loans (pool - reserved)."""
        return (self.capital_pool or ZERO) - (self.capital_reserved or ZERO)

    def owner_reference(self) -> LenderReference:
        """User or business the lender's match records are addressed to."""
        raise NotImplementedError(f"{type(self).__name__} has no lender owner")

    def is_acting_user(self, user_id: uuid.UUID) -> bool:
        """Whether ``user_id`` may accept or decline offers for this lender."""
        raise NotImplementedError(f"{type(self).__name__} has no acting user")

    def eligibility_inputs(self) -> LenderCriteria:
        return LenderCriteria(
            min_amount=self.min_amount or ZERO,
            max_amount=self.max_amount,
            countries=_region_codes(self.countries),
            states=_region_codes(self.states),
            allow_first_time_borrowers=(
                True
                if self.allow_first_time_borrowers is None
                else self.allow_first_time_borrowers
            ),
            first_time_borrower_limit=self.first_time_borrower_limit,
        )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(id={self.id}, pool={self.capital_pool}, "
            f"reserved={self.capital_reserved}, auto_accept={self.auto_accept})>"
        )


class IndividualLenderPreference(LenderPreference):
    """Preferences of an individual (peer) lender."""

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, unique=True, index=True
    )

    __mapper_args__ = {"polymorphic_identity": LenderKind.INDIVIDUAL.value}

    def owner_reference(self) -> LenderReference:
        return LenderReference(lender_user_id=self.user_id, lender_business_id=None)

    def is_acting_user(self, user_id: uuid.UUID) -> bool:
        return self.user_id == user_id


class BusinessLenderPreference(LenderPreference):
    """Preferences of a business lender, including its supported loan types."""

    business_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, unique=True, index=True
    )
    # User who operates the business account
    owner_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True, index=True
    )

    loan_types: Mapped[list["BusinessLoanType"]] = relationship(
        "BusinessLoanType",
        back_populates="lender",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"polymorphic_identity": LenderKind.BUSINESS.value}

    def owner_reference(self) -> LenderReference:
        return LenderReference(lender_user_id=None, lender_business_id=self.business_id)

    def is_acting_user(self, user_id: uuid.UUID) -> bool:
        return self.owner_user_id == user_id

    def eligibility_inputs(self) -> LenderCriteria:
        criteria = super().eligibility_inputs()
        return LenderCriteria(
            min_amount=criteria.min_amount,
            max_amount=criteria.max_amount,
            countries=criteria.countries,
            states=criteria.states,
            allow_first_time_borrowers=criteria.allow_first_time_borrowers,
            first_time_borrower_limit=criteria.first_time_borrower_limit,
            supported_loan_types=frozenset(
                row.loan_type.lower() for row in (self.loan_types or [])
            ),
        )


class BusinessLoanType(BaseModel):
    """A loan type a business lender has explicitly opted into."""

    __tablename__ = "business_loan_types"
    __table_args__ = (
        UniqueConstraint(
            "lender_preference_id", "loan_type", name="uq_business_loan_types_lender_type"
        ),
    )

    lender_preference_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("lender_preferences.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    loan_type: Mapped[str] = mapped_column(String(100), nullable=False)

    lender: Mapped["BusinessLenderPreference"] = relationship(
        "BusinessLenderPreference", back_populates="loan_types"
    )

    def __repr__(self) -> str:
        return f"<BusinessLoanType(lender={self.lender_preference_id}, type={self.loan_type!r})>"


class TierPolicy(BaseModel):
    """Rate and limit override for one borrower trust tier."""

    __tablename__ = "lender_tier_policies"
    __table_args__ = (
        UniqueConstraint("lender_preference_id", "tier", name="uq_lender_tier_policies_tier"),
    )

    lender_preference_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("lender_preferences.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tier: Mapped[TrustTier] = mapped_column(
        SQLEnum(TrustTier, name="trust_tier", values_callable=enum_values),
        nullable=False,
    )
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    max_loan_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    lender: Mapped["LenderPreference"] = relationship(
        "LenderPreference", back_populates="tier_policies"
    )

    def __repr__(self) -> str:
        return (
            f"<TierPolicy(lender={self.lender_preference_id}, tier={self.tier.value}, "
            f"rate={self.interest_rate}, max={self.max_loan_amount}, active={self.is_active})>"
        )
