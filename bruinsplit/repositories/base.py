"""
Base repository with common read operations.
All repositories should extend this class for database access.
"""
from typing import Generic, TypeVar, Type, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bruinsplit.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common read operations.

    Provides generic database operations that can be reused across all repositories.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get(self, id: str) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found

        Example:
            ```python
            ride = await ride_repo.get(ride_id)
            if ride:
                print(ride.owner_id)
            ```
        """
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

