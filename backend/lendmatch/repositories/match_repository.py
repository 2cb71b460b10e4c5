"""Repository for match records (lender offers)."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lendmatch.core.enums import MatchRecordStatus
from lendmatch.models.domain.match import MatchRecord
from lendmatch.repositories.base import BaseRepository


class MatchRepository(BaseRepository[MatchRecord]):
    """
    Repository for match records.

    Provides batch creation of a matching round's offers and the queries the
    orchestrator and the expiry sweep need.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the match repository.

        Args:
            db: Async database session
        """
        super().__init__(MatchRecord, db)

    async def create_batch(self, records: List[MatchRecord]) -> List[MatchRecord]:
        """
        Batch insert the match records of one matching round.

        Args:
            records: List of MatchRecord instances to insert

        Returns:
            List of created MatchRecord instances with IDs
        """
        return await self.add_all(records)

    async def get_with_relations(self, match_id: UUID) -> Optional[MatchRecord]:
        """
        Get a match record with its loan and lender loaded.

        Args:
            match_id: UUID of the match record

        Returns:
            MatchRecord, or None if not found
        """
        stmt = (
            select(MatchRecord)
            .where(MatchRecord.id == match_id)
            .options(
                selectinload(MatchRecord.loan),
                selectinload(MatchRecord.lender),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_loan(self, loan_id: UUID) -> List[MatchRecord]:
        """
        Get every match record of a loan, ordered by attempt then rank.

        Args:
            loan_id: UUID of the loan request

        Returns:
            List of MatchRecord instances
        """
        stmt = (
            select(MatchRecord)
            .where(MatchRecord.loan_id == loan_id)
            .order_by(MatchRecord.attempt, MatchRecord.match_rank)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_live_pending(self, loan_id: UUID, now: datetime) -> List[MatchRecord]:
        """
        Get pending, unexpired records of a loan, best rank first.

        Args:
            loan_id: UUID of the loan request
            now: Reference time for expiry

        Returns:
            List of live pending MatchRecord instances
        """
        stmt = (
            select(MatchRecord)
            .where(
                MatchRecord.loan_id == loan_id,
                MatchRecord.status == MatchRecordStatus.PENDING,
                MatchRecord.expires_at >= now,
            )
            .order_by(MatchRecord.attempt.desc(), MatchRecord.match_rank)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_for_lenders(
        self,
        lender_ids: List[UUID],
        pending_only: bool = True,
    ) -> List[MatchRecord]:
        """
        Get the offers addressed to the given lender preferences, newest first.

        Args:
            lender_ids: Lender preference ids
            pending_only: Only return records still pending

        Returns:
            List of MatchRecord instances with their loans loaded
        """
        if not lender_ids:
            return []

        stmt = (
            select(MatchRecord)
            .where(MatchRecord.lender_preference_id.in_(lender_ids))
            .options(selectinload(MatchRecord.loan))
            .order_by(MatchRecord.created_at.desc(), MatchRecord.match_rank)
        )
        if pending_only:
            stmt = stmt.where(MatchRecord.status == MatchRecordStatus.PENDING)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_expired_pending(self, now: datetime) -> List[MatchRecord]:
        """
        Get pending records whose offer window has closed.

        Args:
            now: Reference time for expiry

        Returns:
            List of MatchRecord instances
        """
        stmt = (
            select(MatchRecord)
            .where(
                MatchRecord.status == MatchRecordStatus.PENDING,
                MatchRecord.expires_at < now,
            )
            .order_by(MatchRecord.loan_id, MatchRecord.match_rank)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_if_pending(self, match_id: UUID, values: dict[str, Any]) -> bool:
        """
        Write record columns only while the record is still pending.

        Every status change goes through here, so a record that was accepted,
        declined or expired never changes again. The session is not
        synchronised; refresh the record after committing.

        Args:
            match_id: UUID of the match record
            values: Column values to write

        Returns:
            True if the row was updated, False if the record was no longer pending
        """
        stmt = (
            update(MatchRecord)
            .where(
                MatchRecord.id == match_id,
                MatchRecord.status == MatchRecordStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def mark_responded(
        self,
        match_id: UUID,
        status: MatchRecordStatus,
        responded_at: datetime,
        was_auto_accepted: bool = False,
    ) -> bool:
        """
        Set the final status of a record as part of a lender assignment.

        Args:
            match_id: UUID of the match record
            status: ``accepted`` or ``auto_accepted``
            responded_at: Response timestamp
            was_auto_accepted: Whether the assignment came from auto-accept

        Returns:
            True if the record was still pending and is now answered
        """
        return await self.update_if_pending(
            match_id,
            {
                "status": status,
                "responded_at": responded_at,
                "was_auto_accepted": was_auto_accepted,
                "updated_at": responded_at,
            },
        )
