from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.category_service import SqlCategoryDirectory
from app.services.directory_service import SqlUserDirectory
from app.services.ledger_service import SqlLedgerAccessor


def get_ledger(db: AsyncSession = Depends(get_db)) -> SqlLedgerAccessor:
    return SqlLedgerAccessor(db)


def get_directory(db: AsyncSession = Depends(get_db)) -> SqlUserDirectory:
    return SqlUserDirectory(db)


def get_categories(db: AsyncSession = Depends(get_db)) -> SqlCategoryDirectory:
    return SqlCategoryDirectory(db)
