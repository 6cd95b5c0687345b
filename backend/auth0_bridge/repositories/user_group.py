"""
UserGroup repository
"""

from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_bridge.models.user import UserGroup

from .base import BaseRepository

LOG_PREFIX = "[UserGroupRepository]"

DEFAULT_GROUPS = [
    {
        "name": "Members",
        "code": "members",
        "description": "Default group for users signing in through Auth0",
    },
]


class UserGroupRepository(BaseRepository[UserGroup]):
    """UserGroup data access"""

    def __init__(self, db: AsyncSession):
        super().__init__(UserGroup, db)

    async def get_by_code(self, code: str) -> Optional[UserGroup]:
        return await self.get_by(code=code)

    async def seed_defaults(self) -> int:
        """Insert the default groups that are missing; returns how many were created"""
        created = 0
        for group in DEFAULT_GROUPS:
            if await self.get_by_code(group["code"]):
                continue
            await self.create(group)
            created += 1
            logger.info(f"{LOG_PREFIX} Seeded user group '{group['code']}'")
        return created
