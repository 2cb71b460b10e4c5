"""Repository for loan requests and their payment schedules."""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.core.enums import LoanMatchStatus
from lendmatch.models.domain.loan import LoanRequest, PaymentScheduleItem
from lendmatch.repositories.base import BaseRepository


class LoanRepository(BaseRepository[LoanRequest]):
    """Loan request queries and the guarded writes that race lender assignment."""

    def __init__(self, db: AsyncSession):
        super().__init__(LoanRequest, db)

    async def update_if_unassigned(
        self,
        loan_id: UUID,
        values: dict[str, Any],
        expected_status: Optional[LoanMatchStatus] = None,
    ) -> bool:
        """
        Write loan columns only while no lender is assigned.

        Every engine-side write that must not race a lender assignment goes
        through here: the assignment itself and the match-state transitions.
        The session is not synchronised; refresh the loan after committing.

        Args:
            loan_id: UUID of the loan request
            values: Column values to write
            expected_status: Also require this ``match_status``

        Returns:
            True if the row was updated, False otherwise
        """
        stmt = update(LoanRequest).where(
            LoanRequest.id == loan_id,
            LoanRequest.lender_user_id.is_(None),
            LoanRequest.business_lender_id.is_(None),
        )
        if expected_status is not None:
            stmt = stmt.where(LoanRequest.match_status == expected_status)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def update_schedule_amounts(
        self,
        loan_id: UUID,
        amount: Decimal,
        principal_amount: Decimal,
        interest_amount: Decimal,
    ) -> int:
        """
        Rewrite every installment of a loan with the per-installment figures.

        Returns:
            Number of schedule rows updated
        """
        stmt = (
            update(PaymentScheduleItem)
            .where(PaymentScheduleItem.loan_id == loan_id)
            .values(
                amount=amount,
                principal_amount=principal_amount,
                interest_amount=interest_amount,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def list_by_ids(self, loan_ids: list[UUID]) -> list[LoanRequest]:
        if not loan_ids:
            return []
        stmt = select(LoanRequest).where(LoanRequest.id.in_(loan_ids)).order_by(LoanRequest.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
