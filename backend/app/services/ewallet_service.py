import random
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from app.core.errors import NotFound, ValidationError

# In-memory only; wallets are lost on restart
_wallets: dict[uuid.UUID, list[dict]] = {}


def connect_wallet(
    user_id: uuid.UUID, wallet_name: str | None, account_number: str | None, balance: Decimal | None = None
) -> dict:
    if not wallet_name or not account_number:
        raise ValidationError("Wallet name and account number are required")
    wallet = {
        "id": str(time.time_ns()),
        "wallet_name": wallet_name,
        "account_number": account_number,
        "balance": balance if balance is not None else Decimal("0"),
        "currency": "IDR",
        "last_sync": None,
        "sync_frequency": "daily",
        "is_active": True,
    }
    _wallets.setdefault(user_id, []).append(wallet)
    return wallet


def list_wallets(user_id: uuid.UUID) -> list[dict]:
    return list(_wallets.get(user_id, []))


def sync_wallet(user_id: uuid.UUID, wallet_id: str) -> dict:
    """Simulated sync: refreshes the balance and timestamp, imports nothing."""
    wallet = next((w for w in _wallets.get(user_id, []) if w["id"] == wallet_id), None)
    if wallet is None:
        raise NotFound("E-wallet not found")
    wallet["balance"] = Decimal(random.randint(10_000, 1_000_010_000))
    wallet["last_sync"] = datetime.now(timezone.utc)
    return {"synced_transactions": 0}
