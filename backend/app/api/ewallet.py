from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.errors import GroupBudgetError, to_http_exception
from app.models.user import User
from app.schemas.ewallet import EWalletConnect, EWalletResponse, EWalletSyncResponse
from app.services.ewallet_service import connect_wallet, list_wallets, sync_wallet

router = APIRouter(prefix="/api/ewallet", tags=["ewallet"])


@router.post("/connect", response_model=EWalletResponse, status_code=201)
async def connect(body: EWalletConnect, user: User = Depends(get_current_user)):
    try:
        return connect_wallet(user.id, body.wallet_name, body.account_number, body.balance)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.get("/accounts", response_model=list[EWalletResponse])
async def accounts(user: User = Depends(get_current_user)):
    return list_wallets(user.id)


@router.post("/sync/{wallet_id}", response_model=EWalletSyncResponse)
async def sync(wallet_id: str, user: User = Depends(get_current_user)):
    try:
        return sync_wallet(user.id, wallet_id)
    except GroupBudgetError as e:
        raise to_http_exception(e)
