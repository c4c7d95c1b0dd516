import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.group_budget import BudgetPeriod, GroupBudgetMember
from app.schemas.ledger import LedgerEntry
from app.services.ledger_service import LedgerAccessor
from app.utils.collaborator_utils import call_collaborator

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class SpendSummary:
    period: BudgetPeriod
    start_date: date
    end_date: date
    category_id: uuid.UUID | None
    # Signed ledger sum, kept for audit; may be negative
    raw_total: Decimal
    transaction_count: int

    @property
    def spent(self) -> Decimal:
        return max(self.raw_total, ZERO)


def _entry_date(entry: LedgerEntry) -> date:
    ts: datetime = entry.occurred_at
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


def _counts_toward(entry: LedgerEntry, start_date: date, end_date: date, category_id: uuid.UUID | None) -> bool:
    if not (start_date <= _entry_date(entry) <= end_date):
        return False
    return category_id is None or entry.category_id == category_id


def summarize(
    entries: list[LedgerEntry],
    period: BudgetPeriod,
    start_date: date,
    end_date: date,
    category_id: uuid.UUID | None = None,
) -> SpendSummary:
    """Sum the entries inside the window. Decimal addition keeps this order-independent."""
    counted = [e for e in entries if _counts_toward(e, start_date, end_date, category_id)]
    return SpendSummary(
        period=period,
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        raw_total=sum((e.amount for e in counted), ZERO),
        transaction_count=len(counted),
    )


async def get_member_ids(db: AsyncSession, group_budget_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(
        select(GroupBudgetMember.user_id)
        .where(GroupBudgetMember.group_budget_id == group_budget_id)
        .order_by(GroupBudgetMember.joined_at)
    )
    return [row[0] for row in result.all()]


async def compute_spent(
    db: AsyncSession,
    group_budget_id: uuid.UUID,
    period: BudgetPeriod,
    start_date: date,
    end_date: date,
    category_id: uuid.UUID | None = None,
    *,
    ledger: LedgerAccessor,
    timeout: float | None = None,
) -> SpendSummary:
    """
    Total ledger spend of a budget's members inside [start_date, end_date].

    Reads only; one call to the ledger. ``spent`` on the result is clamped at
    zero, ``raw_total`` is the signed sum.
    """
    member_ids = await get_member_ids(db, group_budget_id)
    entries = await call_collaborator(
        ledger.list_transactions(member_ids, (start_date, end_date), category_id),
        "Ledger",
        timeout,
    )
    return summarize(entries, period, start_date, end_date, category_id)


def progress_percentage(spent: Decimal, amount: Decimal) -> float:
    """min(spent / amount * 100, 100), floored at 0. ``amount`` is always positive."""
    pct = min(max(spent, ZERO) / amount * HUNDRED, HUNDRED)
    return float(pct.quantize(CENTS))
