"""Base repository pattern for all data access."""

from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ResourceNotFoundError
from ..database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Repositories only flush; committing is left to whoever owns the session
    so several repository calls can share one transaction.
    """

    # Name used in "not found" errors, e.g. "Chat with id ... not found"
    resource_name: str = "Resource"

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get(self, id: UUID) -> Optional[ModelType]:
        """Get single record by ID."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, id: UUID) -> ModelType:
        """Get single record by ID or raise ResourceNotFoundError."""
        instance = await self.get(id)
        if instance is None:
            raise ResourceNotFoundError(self.resource_name, str(id))
        return instance

    async def create(self, **data) -> ModelType:
        """Create new record."""
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelType, **data) -> ModelType:
        """Set attributes on a loaded record and flush."""
        for key, value in data.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        """Delete a loaded record (hard delete)."""
        await self.session.delete(instance)
        await self.session.flush()
