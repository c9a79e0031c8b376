"""Pending upload (presigned grant) repository."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, delete, select

from .base import BaseRepository
from ..database import PendingUpload, utcnow


class PendingUploadRepository(BaseRepository[PendingUpload]):
    """Repository for PendingUpload operations."""

    resource_name = "Pending upload"

    async def get_by_key(self, key: str, upload_type: str) -> Optional[PendingUpload]:
        """Get the grant for a key and target kind, expired or not."""
        result = await self.session.execute(
            select(PendingUpload).where(
                and_(
                    PendingUpload.key == key,
                    PendingUpload.type == upload_type,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_live(
        self,
        key: str,
        upload_type: str,
        now: Optional[datetime] = None,
    ) -> Optional[PendingUpload]:
        """Get the grant for a key and target kind if it has not expired."""
        result = await self.session.execute(
            select(PendingUpload).where(
                and_(
                    PendingUpload.key == key,
                    PendingUpload.type == upload_type,
                    PendingUpload.expires_at >= (now or utcnow()),
                )
            )
        )
        return result.scalar_one_or_none()

    async def delete_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Delete grants past their expiry. Returns the keys they reserved."""
        cutoff = now or utcnow()
        result = await self.session.execute(
            select(PendingUpload.key).where(PendingUpload.expires_at < cutoff)
        )
        keys = list(result.scalars().all())
        if keys:
            await self.session.execute(
                delete(PendingUpload)
                .where(PendingUpload.expires_at < cutoff)
                .execution_options(synchronize_session="fetch")
            )
        return keys
