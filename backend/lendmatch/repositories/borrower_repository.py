"""Repository for the read-only borrower snapshot."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.models.domain.borrower import BorrowerProfile
from lendmatch.repositories.base import BaseRepository


class BorrowerRepository(BaseRepository[BorrowerProfile]):
    def __init__(self, db: AsyncSession):
        super().__init__(BorrowerProfile, db)

    async def get_by_borrower_id(self, borrower_id: UUID) -> Optional[BorrowerProfile]:
        return await self.find_one_by(borrower_id=borrower_id)
