from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.errors import GroupBudgetError, to_http_exception
from app.models.user import User
from app.schemas.ledger import TransactionCreate, TransactionResponse
from app.services.ledger_service import record_transaction

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", response_model=TransactionResponse, status_code=201)
async def create(
    body: TransactionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await record_transaction(db, user, body)
    except GroupBudgetError as e:
        raise to_http_exception(e)
