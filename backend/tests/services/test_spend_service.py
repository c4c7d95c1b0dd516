import random
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.core.errors import Unavailable
from app.models.group_budget import BudgetPeriod
from app.schemas.group_budget import GroupBudgetCreate
from app.schemas.ledger import LedgerEntry
from app.services.group_budget_service import create_group_budget
from app.services.spend_service import compute_spent, progress_percentage, summarize

JUNE_START = date(2024, 6, 1)
JUNE_END = date(2024, 6, 30)
FOOD = uuid.uuid4()
TRAVEL = uuid.uuid4()


def entry(amount, day, category_id=None, hour=12):
    return LedgerEntry(
        amount=Decimal(amount),
        occurred_at=datetime(2024, 6 if day > 0 else 5, day if day > 0 else 31, hour, tzinfo=timezone.utc),
        category_id=category_id,
    )


def test_sums_signed_amounts_inside_window():
    summary = summarize(
        [entry("100.00", 1), entry("250.50", 15), entry("-50.50", 30)],
        BudgetPeriod.monthly, JUNE_START, JUNE_END,
    )
    assert summary.raw_total == Decimal("300.00")
    assert summary.spent == Decimal("300.00")
    assert summary.transaction_count == 3


def test_window_is_inclusive_and_excludes_outside_days():
    before = entry("999", 0)  # 31 May
    after = LedgerEntry(amount=Decimal("999"), occurred_at=datetime(2024, 7, 1, 0, 0, tzinfo=timezone.utc))
    first_moment = entry("10", 1, hour=0)
    last_moment = LedgerEntry(amount=Decimal("5"), occurred_at=datetime(2024, 6, 30, 23, 59, 59, tzinfo=timezone.utc))
    summary = summarize([before, after, first_moment, last_moment], BudgetPeriod.monthly, JUNE_START, JUNE_END)
    assert summary.spent == Decimal("15")
    assert summary.transaction_count == 2


def test_category_filter():
    summary = summarize(
        [entry("100", 3, FOOD), entry("70", 4, TRAVEL), entry("30", 5)],
        BudgetPeriod.monthly, JUNE_START, JUNE_END, category_id=FOOD,
    )
    assert summary.spent == Decimal("100")


def test_negative_total_is_clamped_but_kept_for_audit():
    summary = summarize(
        [entry("40", 2), entry("-100", 3)],
        BudgetPeriod.weekly, JUNE_START, JUNE_END,
    )
    assert summary.raw_total == Decimal("-60")
    assert summary.spent == Decimal("0")


def test_result_does_not_depend_on_entry_order():
    entries = [entry(f"{i}.{i:02d}", (i % 30) + 1) for i in range(1, 60)] + [entry("-12.34", 7)]
    expected = summarize(entries, BudgetPeriod.monthly, JUNE_START, JUNE_END)
    rng = random.Random(7)
    for _ in range(5):
        shuffled = entries[:]
        rng.shuffle(shuffled)
        assert summarize(shuffled, BudgetPeriod.monthly, JUNE_START, JUNE_END) == expected


def test_naive_timestamps_are_treated_as_utc_dates():
    naive = LedgerEntry(amount=Decimal("20"), occurred_at=datetime(2024, 6, 30, 23, 0))
    summary = summarize([naive], BudgetPeriod.daily, JUNE_END, JUNE_END)
    assert summary.spent == Decimal("20")


@pytest.mark.parametrize("spent, amount, expected", [
    (Decimal("400000"), Decimal("1000000"), 40.0),
    (Decimal("0"), Decimal("10"), 0.0),
    (Decimal("10"), Decimal("10"), 100.0),
    (Decimal("25"), Decimal("10"), 100.0),
    (Decimal("-5"), Decimal("10"), 0.0),
    (Decimal("1"), Decimal("3"), 33.33),
])
def test_progress_percentage(spent, amount, expected):
    assert progress_percentage(spent, amount) == expected


@pytest.mark.asyncio
async def test_compute_spent_queries_members_once(db, users, fake_ledger, fake_directory):

    categories = AsyncMock()
    budget = await create_group_budget(
        db, users.alice,
        GroupBudgetCreate(name="Trip", amount=Decimal("500"), start_date=JUNE_START, end_date=JUNE_END),
        directory=fake_directory.from_users(users.alice), categories=categories,
    )
    ledger = fake_ledger()
    ledger.post(users.alice.id, Decimal("120"), datetime(2024, 6, 2, tzinfo=timezone.utc))
    ledger.post(users.bob.id, Decimal("999"), datetime(2024, 6, 2, tzinfo=timezone.utc))  # not a member

    summary = await compute_spent(
        db, budget["id"], BudgetPeriod.monthly, JUNE_START, JUNE_END, ledger=ledger,
    )
    assert summary.spent == Decimal("120")
    assert ledger.calls == [([users.alice.id], (JUNE_START, JUNE_END), None)]


@pytest.mark.asyncio
async def test_compute_spent_timeout_is_unavailable(db, users, fake_ledger):
    ledger = fake_ledger(delay=1)
    with pytest.raises(Unavailable):
        await compute_spent(
            db, uuid.uuid4(), BudgetPeriod.monthly, JUNE_START, JUNE_END, ledger=ledger, timeout=0.01,
        )
