"""
User Profile Service
Profiles created from identity-provider data on first sign-in
"""
from typing import Any, Dict, Optional

from loguru import logger

from application.repositories.interfaces import IUserProfileRepository
from core.exceptions import (
    DuplicateResourceException,
    MissingRequiredFieldException,
    ValidationException,
)
from domain.entities import UserProfile
from domain.value_objects import IdentitySnapshot

_PROTECTED_FIELDS = {"id", "wishlist", "created_at"}


class UserProfileService:

    def __init__(self, user_repo: IUserProfileRepository):
        self.user_repo = user_repo

    async def ensure_profile(self, identity: IdentitySnapshot) -> UserProfile:
        """
        Create the profile when it does not exist yet; registered profiles
        are left untouched.

        A document written only by wishlist saves before first sign-in
        gets the identity fields merged in, keeping its wishlist.
        """
        if identity is None or not identity.user_id:
            raise MissingRequiredFieldException("userId")

        existing = await self.user_repo.get_by_id(identity.user_id)
        if existing is not None and existing.is_registered():
            return existing

        profile = UserProfile(
            id=identity.user_id,
            name=identity.display_name or "",
            username=identity.username or "",
            email=identity.email or "",
            image=identity.avatar_url or "",
        )
        if existing is not None:
            await self.user_repo.complete(profile)
            logger.info(f"Completed profile for user {identity.user_id} ({len(existing.wishlist)} saved projects kept)")
            return await self.user_repo.get_by_id(identity.user_id) or profile

        try:
            await self.user_repo.create(profile)
            logger.info(f"Created profile for user {identity.user_id}")
        except DuplicateResourceException:
            # Another session created it between the read and the write
            logger.debug(f"Profile for {identity.user_id} created concurrently")

        return await self.user_repo.get_by_id(identity.user_id) or profile

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        if not user_id:
            return None
        return await self.user_repo.get_by_id(user_id)

    async def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        if not username:
            return None
        return await self.user_repo.get_by_username(username)

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> None:
        """Partial profile update; the wishlist is only changed through WishlistService"""
        if not user_id:
            raise MissingRequiredFieldException("userId")
        for name in changes:
            if name in _PROTECTED_FIELDS:
                raise ValidationException(name, "cannot be changed through a profile update")
        await self.user_repo.update(user_id, changes)
