from typing import Any, Generic, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.db.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository over one model.

    Repositories never commit: the service that owns the session decides
    the transaction boundaries.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize the repository.

        Args:
            model: The SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def add_all(self, instances: Sequence[ModelType]) -> list[ModelType]:
        """
        Stage new entities and flush so their defaults and ids are populated.

        Args:
            instances: Entities to insert

        Returns:
            The flushed entities
        """
        self.db.add_all(instances)
        await self.db.flush()
        return list(instances)

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """
        Retrieve an entity by its ID.

        Args:
            id: The UUID of the entity

        Returns:
            The entity if found, None otherwise
        """
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_one_by(self, **filters: Any) -> Optional[ModelType]:
        """
        Find a single entity by column equality.

        Args:
            **filters: Column name to value, e.g. ``borrower_id=...``

        Returns:
            The first matching entity, or None if not found
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.db.execute(stmt)
        return result.scalars().first()
