from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class EWalletConnect(BaseModel):
    wallet_name: str | None = None
    account_number: str | None = None
    balance: Decimal | None = None


class EWalletResponse(BaseModel):
    id: str
    wallet_name: str
    account_number: str
    balance: Decimal
    currency: str
    last_sync: datetime | None = None
    sync_frequency: str
    is_active: bool


class EWalletSyncResponse(BaseModel):
    synced_transactions: int
