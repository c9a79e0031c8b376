"""User profile, search and blocking."""

from typing import List, Optional
from uuid import UUID

from loguru import logger

from ..core.exceptions import ResourceAccessDeniedError, ValidationError
from ..database import User
from ..repositories.image_repository import ImageRepository
from ..repositories.user_block_repository import UserBlockRepository
from ..repositories.user_repository import UserRepository
from ..schemas.user import MeResponse


class UserService:
    """Profile and block-list operations."""

    def __init__(
        self,
        user_repo: UserRepository,
        block_repo: UserBlockRepository,
        image_repo: ImageRepository,
    ):
        self.user_repo = user_repo
        self.block_repo = block_repo
        self.image_repo = image_repo

    async def get_me(self, user: User) -> MeResponse:
        """Profile of the authenticated user with account linkage details."""
        response = MeResponse.model_validate(user)
        response.blocked_user_ids = await self.block_repo.get_blocked_ids(user.id)
        response.has_password = user.password_hash is not None
        response.google_linked = user.google_id is not None
        response.facebook_linked = user.facebook_id is not None
        return response

    async def search(self, current_user: User, term: Optional[str], limit: int = 50) -> List[User]:
        return await self.user_repo.search(term, exclude_id=current_user.id, limit=limit)

    async def get_user(self, user_id: UUID) -> User:
        return await self.user_repo.get_or_raise(user_id)

    async def update_user(self, current_user: User, user_id: UUID, **data) -> User:
        """Update profile fields. Users can only edit themselves."""
        if current_user.id != user_id:
            raise ResourceAccessDeniedError("You can only update your own profile")

        if "name" in data:
            data["name"] = (data["name"] or "").strip()
            if not data["name"]:
                raise ValidationError("Name cannot be empty")

        changes = {key: value for key, value in data.items() if key in ("name", "status_message")}
        return await self.user_repo.update(current_user, **changes)

    async def delete_user(self, current_user: User, user_id: UUID) -> List[str]:
        """
        Delete an account with everything that cascades from it.

        Returns:
            Storage keys of the images that went with the account
        """
        if current_user.id != user_id:
            raise ResourceAccessDeniedError("You can only delete your own account")

        keys = await self.image_repo.keys_owned_by_user(user_id)
        await self.user_repo.delete(current_user)
        logger.info(f"Deleted user {user_id}")
        return keys

    async def block_user(self, current_user: User, target_id: UUID) -> None:
        """Block a user. Blocking twice is a no-op."""
        if current_user.id == target_id:
            raise ValidationError("You cannot block yourself")
        await self.user_repo.get_or_raise(target_id)

        if await self.block_repo.get_block(current_user.id, target_id) is None:
            await self.block_repo.create(blocker_id=current_user.id, blocked_id=target_id)

    async def unblock_user(self, current_user: User, target_id: UUID) -> None:
        """Remove a block. Unblocking someone not blocked is a no-op."""
        if current_user.id == target_id:
            raise ValidationError("You cannot unblock yourself")
        await self.user_repo.get_or_raise(target_id)
        await self.block_repo.remove(current_user.id, target_id)
