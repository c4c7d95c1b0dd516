import uuid
from typing import Protocol

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.schemas.category import CategoryInfo


class CategoryDirectory(Protocol):
    async def exists(self, category_id: uuid.UUID) -> bool: ...

    async def get(self, category_id: uuid.UUID) -> CategoryInfo | None: ...


class SqlCategoryDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, category_id: uuid.UUID) -> bool:
        result = await self.db.execute(select(func.count(Category.id)).where(Category.id == category_id))
        return result.scalar_one() > 0

    async def get(self, category_id: uuid.UUID) -> CategoryInfo | None:
        category = await self.db.get(Category, category_id)
        return CategoryInfo.model_validate(category) if category else None


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())
