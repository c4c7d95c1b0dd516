import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict


class LedgerEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    amount: Decimal
    category_id: uuid.UUID | None = None
    occurred_at: datetime
    budget_ref: uuid.UUID | None = None


class TransactionCreate(BaseModel):
    amount: Decimal
    category_id: uuid.UUID | None = None
    description: str | None = None
    occurred_at: datetime | None = None
    group_budget_id: uuid.UUID | None = None


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    category_id: uuid.UUID | None = None
    description: str | None = None
    occurred_at: datetime
    group_budget_id: uuid.UUID | None = None
