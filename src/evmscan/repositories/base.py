"""Base repository with common CRUD operations.

Provides a generic async repository pattern for SQLAlchemy models.
"""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from evmscan.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic async repository with common CRUD operations.

    Example:
        repo = ContractAbiRepository(session)
        row = await repo.get_by_id("0xabc...")
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with async session.

        @param session - SQLAlchemy async session
        """
        self.session = session

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get record by primary key.

        @param id - Primary key value
        @returns Model instance or None if not found
        """
        return await self.session.get(self.model, id)

    async def get_by_filter(
        self,
        *,
        order_by: Any | None = None,
        **filters: Any,
    ) -> Sequence[ModelType]:
        """Get records matching filter criteria.

        @param order_by - Column to order by
        @param filters - Key-value pairs for filtering (column=value)
        @returns List of matching model instances
        """
        stmt = select(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key) and value is not None:
                stmt = stmt.where(getattr(self.model, key) == value)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def upsert(self, obj: ModelType) -> ModelType:
        """Insert or replace a record by primary key.

        @param obj - Model instance with every column set
        @returns Persistent model instance
        """
        merged = await self.session.merge(obj)
        await self.session.flush()
        return merged

    async def delete_all(self) -> int:
        """Delete every record.

        @returns Number of deleted records
        """
        result = await self.session.execute(delete(self.model))
        await self.session.flush()
        return result.rowcount
