"""User block repository."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, or_, select

from .base import BaseRepository
from ..database import UserBlock


class UserBlockRepository(BaseRepository[UserBlock]):
    """Repository for UserBlock operations."""

    resource_name = "Block"

    async def get_block(self, blocker_id: UUID, blocked_id: UUID) -> Optional[UserBlock]:
        """Get the block ``blocker_id`` placed on ``blocked_id``."""
        result = await self.session.execute(
            select(UserBlock).where(
                and_(
                    UserBlock.blocker_id == blocker_id,
                    UserBlock.blocked_id == blocked_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def is_blocked_between(self, user_a: UUID, user_b: UUID) -> bool:
        """Check for a block in either direction."""
        result = await self.session.execute(
            select(UserBlock.id).where(
                or_(
                    and_(UserBlock.blocker_id == user_a, UserBlock.blocked_id == user_b),
                    and_(UserBlock.blocker_id == user_b, UserBlock.blocked_id == user_a),
                )
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_blocked_ids(self, blocker_id: UUID) -> List[UUID]:
        """Ids of every user ``blocker_id`` has blocked."""
        result = await self.session.execute(
            select(UserBlock.blocked_id)
            .where(UserBlock.blocker_id == blocker_id)
            .order_by(UserBlock.created_at)
        )
        return list(result.scalars().all())

    async def remove(self, blocker_id: UUID, blocked_id: UUID) -> bool:
        """Remove a block. Returns True if one existed."""
        result = await self.session.execute(
            delete(UserBlock).where(
                and_(
                    UserBlock.blocker_id == blocker_id,
                    UserBlock.blocked_id == blocked_id,
                )
            )
        )
        return result.rowcount > 0
