"""Model factories for the matching engine tests.

Column defaults only apply on flush, so factories set every field the
engine reads. That keeps them usable without a session.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from lendmatch.core.enums import LoanMatchStatus, LoanStatus, MatchRecordStatus, TrustTier
from lendmatch.db.base import utcnow
from lendmatch.models.domain import (
    BorrowerProfile,
    BusinessLenderPreference,
    BusinessLoanType,
    IndividualLenderPreference,
    LoanRequest,
    MatchRecord,
    PaymentScheduleItem,
    TierPolicy,
)


def make_loan(
    amount="500.00",
    borrower_id: Optional[uuid.UUID] = None,
    installments: int = 1,
    with_schedule: bool = False,
    **overrides,
) -> LoanRequest:
    values = dict(
        id=uuid.uuid4(),
        borrower_id=borrower_id or uuid.uuid4(),
        amount=Decimal(amount),
        currency="USD",
        country="US",
        state="CA",
        loan_type=None,
        total_installments=installments,
        status=LoanStatus.REQUESTED,
        match_status=LoanMatchStatus.UNMATCHED,
        match_attempts=0,
        auto_matched=False,
    )
    values.update(overrides)
    loan = LoanRequest(**values)
    if with_schedule:
        loan.schedule = [
            PaymentScheduleItem(
                id=uuid.uuid4(),
                due_date=date(2026, 11, 1) + timedelta(days=30 * i),
                amount=Decimal("0.00"),
            )
            for i in range(installments)
        ]
    return loan


def _lender_values(pool, reserved, **overrides) -> dict:
    values = dict(
        id=uuid.uuid4(),
        capital_pool=Decimal(pool),
        capital_reserved=Decimal(reserved),
        is_active=True,
        auto_accept=False,
        interest_rate=Decimal("10.00"),
        min_amount=Decimal("0.00"),
        max_amount=None,
        countries=[],
        states=[],
        allow_first_time_borrowers=True,
        first_time_borrower_limit=None,
        lender_name="Test Lender",
        lender_email="lender@example.com",
        total_loans_funded=0,
        total_amount_funded=Decimal("0.00"),
    )
    values.update(overrides)
    return values


def make_individual_lender(
    pool="1000.00",
    reserved="0.00",
    tier_policies: Optional[list[TierPolicy]] = None,
    **overrides,
) -> IndividualLenderPreference:
    values = _lender_values(pool, reserved, **overrides)
    values.setdefault("user_id", uuid.uuid4())
    lender = IndividualLenderPreference(**values)
    lender.tier_policies = list(tier_policies or [])
    return lender


def make_business_lender(
    pool="1000.00",
    reserved="0.00",
    loan_types: tuple = (),
    tier_policies: Optional[list[TierPolicy]] = None,
    **overrides,
) -> BusinessLenderPreference:
    values = _lender_values(pool, reserved, **overrides)
    values.setdefault("business_id", uuid.uuid4())
    values.setdefault("owner_user_id", uuid.uuid4())
    lender = BusinessLenderPreference(**values)
    lender.loan_types = [
        BusinessLoanType(id=uuid.uuid4(), loan_type=loan_type) for loan_type in loan_types
    ]
    lender.tier_policies = list(tier_policies or [])
    return lender


def make_tier_policy(
    tier: TrustTier,
    rate="12.00",
    max_amount="1000.00",
    is_active: bool = True,
) -> TierPolicy:
    return TierPolicy(
        id=uuid.uuid4(),
        tier=tier,
        interest_rate=Decimal(rate),
        max_loan_amount=Decimal(max_amount),
        is_active=is_active,
    )


def make_borrower(
    borrower_id: uuid.UUID,
    tier: TrustTier = TrustTier.TIER_1,
    completed_loans: int = 0,
) -> BorrowerProfile:
    return BorrowerProfile(
        id=uuid.uuid4(),
        borrower_id=borrower_id,
        full_name="Test Borrower",
        email="borrower@example.com",
        trust_tier=tier,
        completed_loans=completed_loans,
    )


def make_record(
    loan: LoanRequest,
    lender,
    rank: int = 1,
    attempt: int = 1,
    rate="10.00",
    expires_in: timedelta = timedelta(hours=24),
    status: MatchRecordStatus = MatchRecordStatus.PENDING,
) -> MatchRecord:
    owner = lender.owner_reference()
    return MatchRecord(
        id=uuid.uuid4(),
        loan_id=loan.id,
        lender_preference_id=lender.id,
        lender_user_id=owner.lender_user_id,
        lender_business_id=owner.lender_business_id,
        attempt=attempt,
        match_rank=rank,
        match_score=80,
        interest_rate=Decimal(rate),
        status=status,
        expires_at=utcnow() + expires_in,
        was_auto_accepted=False,
    )
