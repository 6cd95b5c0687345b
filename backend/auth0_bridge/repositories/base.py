"""
Base repository - shared CRUD helpers
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth0_bridge.core.database import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Base repository with generic CRUD operations

    Usage:
        class UserRepository(BaseRepository[User]):
            def __init__(self, db: AsyncSession):
                super().__init__(User, db)
    """

    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any, relations: List[str] = None) -> Optional[T]:
        """Fetch a record by primary key"""
        query = select(self.model).where(self.model.id == id)

        if relations:
            for relation in relations:
                query = query.options(selectinload(getattr(self.model, relation)))

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by(self, **kwargs) -> Optional[T]:
        """Fetch a single record matching all equality filters"""
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, data: Dict[str, Any]) -> T:
        """Insert a record"""
        instance = self.model(**data)
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def save(self, instance: T) -> T:
        """Persist a new or modified instance without field validation"""
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def exists(self, **kwargs) -> bool:
        """Check whether a matching record exists"""
        return await self.get_by(**kwargs) is not None
