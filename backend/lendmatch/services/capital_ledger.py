"""Capital ledger: the single write path that assigns a loan to a lender."""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.core.enums import (
    AssignmentOutcome,
    LoanMatchStatus,
    LoanStatus,
    MatchRecordStatus,
)
from lendmatch.db.base import utcnow
from lendmatch.models.domain.loan import LoanRequest
from lendmatch.models.domain.match import MatchRecord
from lendmatch.repositories.lender_repository import LenderRepository
from lendmatch.repositories.loan_repository import LoanRepository
from lendmatch.repositories.match_repository import MatchRepository

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RepaymentTerms:
    """
    Flat-rate repayment figures of an assigned loan.

    Attributes:
        total_interest: amount * rate / 100
        total_amount: amount + total_interest
        repayment_amount: total_amount per installment
        principal_per_installment: amount per installment
        interest_per_installment: total_interest per installment
    """

    total_interest: Decimal
    total_amount: Decimal
    repayment_amount: Decimal
    principal_per_installment: Decimal
    interest_per_installment: Decimal

    @classmethod
    def flat_rate(cls, amount: Decimal, rate: Decimal, installments: int) -> "RepaymentTerms":
        """
        Compute flat-rate terms, every figure rounded half-up to cents.

        Args:
            amount: Principal
            rate: Interest rate percentage, e.g. 12.50
            installments: Number of installments (values below 1 count as 1)

        Returns:
            RepaymentTerms
        """
        amount = Decimal(amount)
        count = max(int(installments or 1), 1)
        total_interest = _to_cents(amount * Decimal(rate) / Decimal(100))
        total_amount = _to_cents(amount + total_interest)
        return cls(
            total_interest=total_interest,
            total_amount=total_amount,
            repayment_amount=_to_cents(total_amount / count),
            principal_per_installment=_to_cents(amount / count),
            interest_per_installment=_to_cents(total_interest / count),
        )


class _LoanLocks:
    """Per-loan asyncio locks, dropped once no coroutine holds a reference."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, loan_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(loan_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[loan_id] = lock
        return lock


_loan_locks = _LoanLocks()


class CapitalLedger:
    """
    Assigns a loan to the lender of a match record, reserving its capital.

    All writes happen in one transaction:

    - The record is answered only while it is still pending, so a declined
      or expired offer can never be accepted.
    - The loan row is updated only while it has no lender reference, so at
      most one record per loan can ever be accepted.
    - The lender row is updated only while ``pool - reserved >= amount``, so
      reserved capital never exceeds the pool.
    - Schedule rows and lender statistics follow.

    A conditional update that matches no row rolls the transaction back.
    Within one process, assignments of the same loan are also serialised by
    a per-loan lock held until the commit completes.

    Callers must commit their own pending changes before calling
    ``try_assign``; a failed assignment rolls back the whole session.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the capital ledger.

        Args:
            db: Async database session
        """
        self.db = db
        self.loan_repo = LoanRepository(db)
        self.lender_repo = LenderRepository(db)
        self.match_repo = MatchRepository(db)

    async def try_assign(
        self,
        loan: LoanRequest,
        record: MatchRecord,
        is_auto_accept: bool,
    ) -> AssignmentOutcome:
        """
        Assign ``loan`` to the lender of ``record``.

        Args:
            loan: The loan request
            record: The match record being accepted (must belong to ``loan``)
            is_auto_accept: Whether the assignment comes from the lender's auto-accept

        Returns:
            ASSIGNED, RECORD_CLOSED, ALREADY_ASSIGNED or INSUFFICIENT_CAPITAL.
            ``loan`` and ``record`` are refreshed from the database either way.
        """
        loan_id = loan.id
        record_id = record.id
        lender_id = record.lender_preference_id

        async with _loan_locks.get(loan_id):
            now = utcnow()
            amount = loan.amount
            terms = RepaymentTerms.flat_rate(amount, record.interest_rate, loan.total_installments)
            lender = record.lender

            answered = await self.match_repo.mark_responded(
                record_id,
                status=(
                    MatchRecordStatus.AUTO_ACCEPTED if is_auto_accept else MatchRecordStatus.ACCEPTED
                ),
                responded_at=now,
                was_auto_accepted=is_auto_accept,
            )
            if not answered:
                await self._abort(loan, record)
                logger.info(
                    f"Match {record_id} is already {record.status.value}, loan {loan_id} not assigned"
                )
                return AssignmentOutcome.RECORD_CLOSED

            assigned = await self.loan_repo.update_if_unassigned(
                loan_id,
                {
                    "lender_user_id": record.lender_user_id,
                    "business_lender_id": record.lender_business_id,
                    "lender_name": lender.lender_name if lender is not None else None,
                    "interest_rate": record.interest_rate,
                    "total_interest": terms.total_interest,
                    "total_amount": terms.total_amount,
                    "repayment_amount": terms.repayment_amount,
                    "amount_remaining": terms.total_amount,
                    "matched_at": now,
                    "auto_matched": is_auto_accept,
                    "status": LoanStatus.PENDING if is_auto_accept else LoanStatus.ACTIVE,
                    "match_status": LoanMatchStatus.MATCHED,
                    "current_match_id": record_id,
                    "updated_at": now,
                },
            )
            if not assigned:
                await self._abort(loan, record)
                logger.info(f"Loan {loan_id} already assigned, match {record_id} lost")
                return AssignmentOutcome.ALREADY_ASSIGNED

            reserved = await self.lender_repo.reserve_capital(lender_id, amount, now)
            if not reserved:
                await self._abort(loan, record)
                logger.warning(
                    f"Lender {lender_id} lacks capacity for loan {loan_id} "
                    f"(amount ${amount}), match {record_id} not assigned"
                )
                return AssignmentOutcome.INSUFFICIENT_CAPITAL

            await self.loan_repo.update_schedule_amounts(
                loan_id,
                amount=terms.repayment_amount,
                principal_amount=terms.principal_per_installment,
                interest_amount=terms.interest_per_installment,
            )

            await self.db.commit()

        await self._reload(loan, record)

        logger.info(
            f"Loan {loan_id} assigned to lender {lender_id} via match {record_id} "
            f"(auto_accept={is_auto_accept}, rate={record.interest_rate}%, "
            f"total=${terms.total_amount})"
        )
        return AssignmentOutcome.ASSIGNED

    async def _abort(self, loan: LoanRequest, record: MatchRecord) -> None:
        await self.db.rollback()
        await self._reload(loan, record)

    async def _reload(self, loan: LoanRequest, record: MatchRecord) -> None:
        await self.db.refresh(loan)
        for item in loan.schedule:
            await self.db.refresh(item)
        await self.db.refresh(record)
        if record.lender is not None:
            await self.db.refresh(record.lender)
