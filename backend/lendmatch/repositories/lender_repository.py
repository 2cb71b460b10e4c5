"""Repository for lender preferences, tier policies and capital updates."""

from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.models.domain.lender import (
    BusinessLenderPreference,
    IndividualLenderPreference,
    LenderPreference,
)
from lendmatch.repositories.base import BaseRepository


class LenderRepository(BaseRepository[LenderPreference]):
    """
    Repository for lender preferences.

    Tier policies and business loan types load eagerly with every lender
    (see the model relationships), so the matching engine never lazy-loads.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the lender repository.

        Args:
            db: Async database session
        """
        super().__init__(LenderPreference, db)

    async def get_catalogue(self, active_only: bool = True) -> List[LenderPreference]:
        """
        Get the lender catalogue in a stable order.

        Args:
            active_only: Only return lenders with ``is_active`` set

        Returns:
            Lender preferences ordered by id, with tier policies and loan types loaded
        """
        stmt = select(LenderPreference)
        if active_only:
            stmt = stmt.where(LenderPreference.is_active.is_(True))
        stmt = stmt.order_by(LenderPreference.id)

        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def get_ids_for_actor(self, actor_id: UUID) -> List[UUID]:
        """
        Get the preference ids a user may act for.

        An individual lender acts for its own preference; a business's
        acting user acts for the business preference.

        Args:
            actor_id: UUID of the acting user

        Returns:
            List of lender preference ids
        """
        stmt = select(LenderPreference.id).where(
            or_(
                IndividualLenderPreference.user_id == actor_id,
                BusinessLenderPreference.owner_user_id == actor_id,
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def reserve_capital(
        self,
        lender_id: UUID,
        amount: Decimal,
        assigned_at: datetime,
    ) -> bool:
        """
        Reserve capital for a newly assigned loan and update funding statistics.

        The update only applies while ``capital_pool - capital_reserved >= amount``,
        so concurrent reservations can never push reserved capital above the pool.

        Args:
            lender_id: UUID of the lender preference
            amount: Loan amount to reserve
            assigned_at: Assignment timestamp

        Returns:
            True if capital was reserved, False if capacity was insufficient
        """
        stmt = (
            update(LenderPreference)
            .where(
                LenderPreference.id == lender_id,
                LenderPreference.capital_pool - LenderPreference.capital_reserved >= amount,
            )
            .values(
                capital_reserved=LenderPreference.capital_reserved + amount,
                total_loans_funded=LenderPreference.total_loans_funded + 1,
                total_amount_funded=LenderPreference.total_amount_funded + amount,
                last_loan_assigned_at=assigned_at,
                updated_at=assigned_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1
