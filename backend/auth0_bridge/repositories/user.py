"""
User repository
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth0_bridge.models.user import User, UserGroup

from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User data access"""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        """Fetch the user linked to an Auth0 subject"""
        result = await self.db.execute(
            select(User).options(selectinload(User.groups)).where(User.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email, case-insensitive"""
        result = await self.db.execute(
            select(User).options(selectinload(User.groups)).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        return await self.get_by(username=username)

    async def username_exists(self, username: str) -> bool:
        return await self.exists(username=username)

    async def attach_group(self, user: User, group: UserGroup) -> None:
        """Add the user to a group's membership collection"""
        if group not in user.groups:
            user.groups.append(group)
        await self.db.flush()
