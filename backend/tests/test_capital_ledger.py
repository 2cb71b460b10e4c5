"""Capital ledger: repayment figures, guarded assignment and concurrent acceptance."""

import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from lendmatch.core.enums import (
    AssignmentOutcome,
    LoanMatchStatus,
    LoanStatus,
    MatchRecordStatus,
)
from lendmatch.core.exceptions import OfferNotAvailableError
from lendmatch.models.domain import LenderPreference, LoanRequest, MatchRecord
from lendmatch.repositories import MatchRepository
from lendmatch.services.capital_ledger import CapitalLedger, RepaymentTerms
from lendmatch.services.matching_service import MatchingService

from factories import make_individual_lender, make_loan, make_record


# ============================================================
# REPAYMENT TERMS
# ============================================================


class TestRepaymentTerms:
    def test_flat_rate_over_two_installments(self):
        terms = RepaymentTerms.flat_rate(Decimal("500"), Decimal("10"), 2)

        assert terms.total_interest == Decimal("50.00")
        assert terms.total_amount == Decimal("550.00")
        assert terms.repayment_amount == Decimal("275.00")
        assert terms.principal_per_installment == Decimal("250.00")
        assert terms.interest_per_installment == Decimal("25.00")

    def test_rounds_half_up_to_cents(self):
        terms = RepaymentTerms.flat_rate(Decimal("1000"), Decimal("12.5"), 3)

        assert terms.total_interest == Decimal("125.00")
        assert terms.repayment_amount == Decimal("375.00")
        assert terms.principal_per_installment == Decimal("333.33")
        assert terms.interest_per_installment == Decimal("41.67")

    def test_zero_installments_count_as_one(self):
        terms = RepaymentTerms.flat_rate(Decimal("100"), Decimal("5"), 0)

        assert terms.repayment_amount == Decimal("105.00")


# ============================================================
# GUARDED ASSIGNMENT
# ============================================================


async def load_record(db, record_id) -> MatchRecord:
    return await MatchRepository(db).get_with_relations(record_id)


async def fetch(session_factory, model, id):
    async with session_factory() as session:
        return (await session.execute(select(model).where(model.id == id))).scalar_one()


class TestTryAssign:
    async def test_assigns_loan_reserves_capital_and_rewrites_schedule(
        self, db, seed, session_factory
    ):
        lender = make_individual_lender(pool="1000.00", lender_name="Ada")
        loan = make_loan(
            "500.00",
            installments=2,
            with_schedule=True,
            match_status=LoanMatchStatus.MATCHING,
        )
        record = make_record(loan, lender, rate="10.00")
        await seed(lender, loan, record)

        record = await load_record(db, record.id)
        outcome = await CapitalLedger(db).try_assign(record.loan, record, is_auto_accept=False)

        assert outcome == AssignmentOutcome.ASSIGNED

        stored = await fetch(session_factory, LoanRequest, loan.id)
        assert stored.lender_user_id == lender.user_id
        assert stored.business_lender_id is None
        assert stored.lender_name == "Ada"
        assert stored.status == LoanStatus.ACTIVE
        assert stored.match_status == LoanMatchStatus.MATCHED
        assert stored.current_match_id == record.id
        assert stored.total_amount == Decimal("550.00")
        assert stored.amount_remaining == Decimal("550.00")
        assert not stored.auto_matched
        assert [item.amount for item in stored.schedule] == [Decimal("275.00")] * 2
        assert [item.interest_amount for item in stored.schedule] == [Decimal("25.00")] * 2

        stored_lender = await fetch(session_factory, LenderPreference, lender.id)
        assert stored_lender.capital_reserved == Decimal("500.00")
        assert stored_lender.total_loans_funded == 1
        assert stored_lender.total_amount_funded == Decimal("500.00")
        assert stored_lender.last_loan_assigned_at is not None

        stored_record = await fetch(session_factory, MatchRecord, record.id)
        assert stored_record.status == MatchRecordStatus.ACCEPTED
        assert stored_record.responded_at is not None

    async def test_auto_accept_leaves_loan_pending(self, db, seed):
        lender = make_individual_lender(auto_accept=True)
        loan = make_loan("200.00", match_status=LoanMatchStatus.MATCHING)
        record = make_record(loan, lender)
        await seed(lender, loan, record)

        record = await load_record(db, record.id)
        outcome = await CapitalLedger(db).try_assign(record.loan, record, is_auto_accept=True)

        assert outcome == AssignmentOutcome.ASSIGNED
        assert record.loan.status == LoanStatus.PENDING
        assert record.loan.auto_matched
        assert record.status == MatchRecordStatus.AUTO_ACCEPTED
        assert record.was_auto_accepted

    async def test_loan_with_lender_is_not_reassigned(self, db, seed, session_factory):
        lender = make_individual_lender()
        previous_lender_id = uuid.uuid4()
        loan = make_loan(
            "200.00",
            match_status=LoanMatchStatus.MATCHED,
            lender_user_id=previous_lender_id,
        )
        record = make_record(loan, lender)
        await seed(lender, loan, record)

        record = await load_record(db, record.id)
        outcome = await CapitalLedger(db).try_assign(record.loan, record, is_auto_accept=False)

        assert outcome == AssignmentOutcome.ALREADY_ASSIGNED
        stored = await fetch(session_factory, LoanRequest, loan.id)
        assert stored.lender_user_id == previous_lender_id
        stored_lender = await fetch(session_factory, LenderPreference, lender.id)
        assert stored_lender.capital_reserved == Decimal("0.00")

    async def test_declined_record_never_assigns_the_loan(self, db, seed, session_factory):
        lender = make_individual_lender()
        loan = make_loan("200.00", match_status=LoanMatchStatus.MATCHING)
        record = make_record(loan, lender)
        await seed(lender, loan, record)

        record = await load_record(db, record.id)
        # Declined from another session after this one read the record
        async with session_factory() as other:
            await other.execute(
                update(MatchRecord)
                .where(MatchRecord.id == record.id)
                .values(status=MatchRecordStatus.DECLINED)
            )
            await other.commit()

        outcome = await CapitalLedger(db).try_assign(record.loan, record, is_auto_accept=False)

        assert outcome == AssignmentOutcome.RECORD_CLOSED
        assert record.status == MatchRecordStatus.DECLINED
        assert not record.loan.has_lender

        stored = await fetch(session_factory, LoanRequest, loan.id)
        assert stored.lender_user_id is None
        assert stored.match_status == LoanMatchStatus.MATCHING
        stored_lender = await fetch(session_factory, LenderPreference, lender.id)
        assert stored_lender.capital_reserved == Decimal("0.00")

    async def test_capacity_drift_rolls_back_the_whole_assignment(
        self, db, seed, session_factory
    ):
        lender = make_individual_lender(pool="1000.00", reserved="800.00")
        loan = make_loan("500.00", match_status=LoanMatchStatus.MATCHING)
        record = make_record(loan, lender)
        await seed(lender, loan, record)

        record = await load_record(db, record.id)
        outcome = await CapitalLedger(db).try_assign(record.loan, record, is_auto_accept=False)

        assert outcome == AssignmentOutcome.INSUFFICIENT_CAPITAL
        # The session reflects the rolled-back state
        assert not record.loan.has_lender
        assert record.status == MatchRecordStatus.PENDING

        stored = await fetch(session_factory, LoanRequest, loan.id)
        assert stored.lender_user_id is None
        assert stored.match_status == LoanMatchStatus.MATCHING
        stored_lender = await fetch(session_factory, LenderPreference, lender.id)
        assert stored_lender.capital_reserved == Decimal("800.00")
        assert stored_lender.total_loans_funded == 0


# ============================================================
# CONCURRENT ACCEPTANCE
# ============================================================


async def accept_in_own_session(session_factory, record_id, actor_id) -> str:
    async with session_factory() as session:
        try:
            await MatchingService(session).accept_offer(record_id, actor_id)
        except OfferNotAvailableError as e:
            return e.code
    return "accepted"


class TestConcurrentAcceptance:
    @pytest.mark.parametrize("bidders", [2, 5])
    async def test_exactly_one_acceptance_wins(self, seed, session_factory, bidders):
        lenders = [make_individual_lender(pool="1000.00") for _ in range(bidders)]
        loan = make_loan("500.00", match_status=LoanMatchStatus.MATCHING)
        records = [
            make_record(loan, lender, rank=rank)
            for rank, lender in enumerate(lenders, start=1)
        ]
        await seed(*lenders, loan, *records)

        results = await asyncio.gather(
            *(
                accept_in_own_session(session_factory, record.id, lender.user_id)
                for record, lender in zip(records, lenders)
            )
        )

        assert results.count("accepted") == 1
        assert results.count("already_assigned") == bidders - 1

        winner = lenders[results.index("accepted")]
        stored = await fetch(session_factory, LoanRequest, loan.id)
        assert stored.lender_user_id == winner.user_id

        async with session_factory() as session:
            statuses = (
                await session.execute(
                    select(MatchRecord.status).where(MatchRecord.loan_id == loan.id)
                )
            ).scalars().all()
            reserved = (
                await session.execute(
                    select(LenderPreference.capital_reserved).order_by(LenderPreference.id)
                )
            ).scalars().all()

        assert statuses.count(MatchRecordStatus.ACCEPTED) == 1
        assert statuses.count(MatchRecordStatus.PENDING) == bidders - 1
        assert sum(reserved) == Decimal("500.00")

    async def test_reserved_capital_never_exceeds_pool(self, seed, session_factory):
        lender = make_individual_lender(pool="1000.00")
        first_loan = make_loan("600.00", match_status=LoanMatchStatus.MATCHING)
        second_loan = make_loan("600.00", match_status=LoanMatchStatus.MATCHING)
        first_record = make_record(first_loan, lender)
        second_record = make_record(second_loan, lender)
        await seed(lender, first_loan, second_loan, first_record, second_record)

        first = await accept_in_own_session(session_factory, first_record.id, lender.user_id)
        second = await accept_in_own_session(session_factory, second_record.id, lender.user_id)

        assert first == "accepted"
        assert second == AssignmentOutcome.INSUFFICIENT_CAPITAL.value

        stored_lender = await fetch(session_factory, LenderPreference, lender.id)
        assert stored_lender.capital_reserved == Decimal("600.00")
        assert stored_lender.capital_reserved <= stored_lender.capital_pool
        stored_loan = await fetch(session_factory, LoanRequest, second_loan.id)
        assert not stored_loan.has_lender
