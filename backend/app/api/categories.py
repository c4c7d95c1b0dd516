import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.dependencies import get_categories
from app.core.errors import NotFound, to_http_exception
from app.models.user import User
from app.schemas.category import CategoryInfo, CategoryResponse
from app.services.category_service import CategoryDirectory, list_categories

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_categories(db)


@router.get("/{category_id}", response_model=CategoryInfo)
async def get(
    category_id: uuid.UUID,
    user: User = Depends(get_current_user),
    categories: CategoryDirectory = Depends(get_categories),
):
    category = await categories.get(category_id)
    if not category:
        raise to_http_exception(NotFound("Category not found"))
    return category
