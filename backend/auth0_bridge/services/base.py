"""
Base service
"""
from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base service

    Holds the request's database session and its transaction boundary
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self):
        """Commit the transaction"""
        await self.db.commit()

    async def rollback(self):
        """Roll the transaction back"""
        await self.db.rollback()
