import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, NotFound, ValidationError
from app.models.group_budget import GroupBudget, GroupBudgetMember
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.ledger import LedgerEntry, TransactionCreate
from app.services.category_service import SqlCategoryDirectory
from app.utils.currency_utils import MAX_AMOUNT, fits_money_column


class LedgerAccessor(Protocol):
    async def list_transactions(
        self,
        member_user_ids: list[uuid.UUID],
        date_range: tuple[date, date],
        category_id: uuid.UUID | None = None,
    ) -> list[LedgerEntry]: ...


def day_bounds(date_range: tuple[date, date]) -> tuple[datetime, datetime]:
    """UTC [start of first day, start of the day after the last day)."""
    start, end = date_range
    since = datetime.combine(start, time.min, tzinfo=timezone.utc)
    until = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return since, until


class SqlLedgerAccessor:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_transactions(
        self,
        member_user_ids: list[uuid.UUID],
        date_range: tuple[date, date],
        category_id: uuid.UUID | None = None,
    ) -> list[LedgerEntry]:
        if not member_user_ids:
            return []
        since, until = day_bounds(date_range)
        query = (
            select(
                Transaction.amount,
                Transaction.category_id,
                Transaction.occurred_at,
                Transaction.group_budget_id.label("budget_ref"),
            )
            .where(
                Transaction.user_id.in_(member_user_ids),
                Transaction.occurred_at >= since,
                Transaction.occurred_at < until,
            )
        )
        if category_id is not None:
            query = query.where(Transaction.category_id == category_id)
        result = await self.db.execute(query)
        return [LedgerEntry.model_validate(row) for row in result.all()]


async def record_transaction(db: AsyncSession, user: User, data: TransactionCreate) -> Transaction:
    if data.amount == 0:
        raise ValidationError("Transaction amount must not be zero")
    if not fits_money_column(data.amount):
        raise ValidationError(f"Amount must have at most two decimal places and not exceed {MAX_AMOUNT}")

    if data.category_id is not None and not await SqlCategoryDirectory(db).exists(data.category_id):
        raise NotFound("Category not found")

    if data.group_budget_id is not None:
        budget = await db.get(GroupBudget, data.group_budget_id)
        if not budget:
            raise NotFound("Group budget not found")
        result = await db.execute(
            select(GroupBudgetMember.id).where(
                GroupBudgetMember.group_budget_id == data.group_budget_id,
                GroupBudgetMember.user_id == user.id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise Forbidden("Only members can post to this group budget")

    transaction = Transaction(
        user_id=user.id,
        amount=data.amount,
        category_id=data.category_id,
        description=data.description,
        occurred_at=data.occurred_at or datetime.now(timezone.utc),
        group_budget_id=data.group_budget_id,
    )
    db.add(transaction)
    await db.commit()
    await db.refresh(transaction)
    return transaction
