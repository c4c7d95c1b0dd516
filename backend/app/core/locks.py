import asyncio
import uuid
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import GroupBudgetError, Unavailable

_budget_locks: dict[uuid.UUID, asyncio.Lock] = {}


def budget_lock(group_budget_id: uuid.UUID) -> asyncio.Lock:
    """Per-budget lock serializing membership and invitation writes in this process."""
    lock = _budget_locks.get(group_budget_id)
    if lock is None:
        lock = asyncio.Lock()
        _budget_locks[group_budget_id] = lock
    return lock


def discard_budget_lock(group_budget_id: uuid.UUID) -> None:
    _budget_locks.pop(group_budget_id, None)


@asynccontextmanager
async def serialized_budget(db: AsyncSession, group_budget_id: uuid.UUID):
    """
    Hold the budget's lock for the block.

    A block that returns without committing (an idempotent read) has its
    transaction ended on exit, so row locks never outlive the budget lock.
    Rejections are raised before anything is written, so the read transaction is
    simply ended (releasing row locks without expiring loaded objects). Timeouts,
    cancellation and unexpected faults roll back.
    """
    async with budget_lock(group_budget_id):
        try:
            yield
            if db.in_transaction():
                await db.commit()
        except GroupBudgetError as e:
            if isinstance(e, Unavailable) or db.new or db.dirty or db.deleted:
                await db.rollback()
            else:
                await db.commit()
            raise
        except BaseException:
            await db.rollback()
            raise
