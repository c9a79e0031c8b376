"""User repository with authentication and search queries."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select

from .base import BaseRepository
from ..database import User

PROVIDER_ID_COLUMNS = {
    "google": User.google_id,
    "facebook": User.facebook_id,
}


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    resource_name = "User"

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if email is already registered."""
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none() is not None

    async def get_by_provider_id(self, provider: str, provider_id: str) -> Optional[User]:
        """Get user by the account id an OAuth provider assigned to them."""
        column = PROVIDER_ID_COLUMNS[provider]
        result = await self.session.execute(
            select(User).where(column == provider_id)
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: List[UUID]) -> List[User]:
        """Get all users whose id is in ``ids``."""
        if not ids:
            return []
        result = await self.session.execute(
            select(User).where(User.id.in_(ids))
        )
        return list(result.scalars().all())

    async def search(
        self,
        term: Optional[str],
        exclude_id: Optional[UUID] = None,
        limit: int = 50,
    ) -> List[User]:
        """Find users whose name or email contains ``term``."""
        query = select(User)

        if term:
            pattern = f"%{term.lower()}%"
            query = query.where(
                or_(
                    func.lower(User.name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)

        query = query.order_by(User.name).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
