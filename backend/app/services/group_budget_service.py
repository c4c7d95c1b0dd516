import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Forbidden, GroupBudgetError, NotFound, ValidationError
from app.core.locks import serialized_budget, discard_budget_lock
from app.models.group_budget import GroupBudget, GroupBudgetMember, BudgetPeriod, BudgetRole
from app.models.invitation import Invitation, InvitationStatus
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.group_budget import GroupBudgetCreate
from app.services.category_service import CategoryDirectory
from app.services.directory_service import UserDirectory
from app.services.invitation_service import invite_user, load_budget_for_update
from app.services.ledger_service import LedgerAccessor
from app.services.spend_service import ZERO, compute_spent, progress_percentage
from app.utils.currency_utils import MAX_AMOUNT, fits_money_column
from app.utils.email_utils import normalize_email

logger = logging.getLogger(__name__)


def _validate(data: GroupBudgetCreate) -> BudgetPeriod:
    if not data.name.strip():
        raise ValidationError("Name is required")
    if data.amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if not fits_money_column(data.amount):
        raise ValidationError(f"Amount must have at most two decimal places and not exceed {MAX_AMOUNT}")
    if data.start_date > data.end_date:
        raise ValidationError("Start date must not be after end date")
    try:
        return BudgetPeriod(data.period)
    except ValueError:
        allowed = ", ".join(p.value for p in BudgetPeriod)
        raise ValidationError(f"Period must be one of: {allowed}")


def budget_view(budget: GroupBudget, spent: Decimal) -> dict:
    """Flatten a budget, its members and invitations into the response shape."""
    return {
        "id": budget.id,
        "name": budget.name,
        "description": budget.description,
        "amount": budget.amount,
        "period": budget.period.value,
        "start_date": budget.start_date,
        "end_date": budget.end_date,
        "category_id": budget.category_id,
        "category": {"id": budget.category.id, "name": budget.category.name} if budget.category else None,
        "created_by": budget.created_by,
        "creator": {
            "id": budget.created_by,
            "name": budget.creator.display_name if budget.creator else "Unknown",
        },
        "created_at": budget.created_at,
        "spent": spent,
        "progress": progress_percentage(spent, budget.amount),
        "members": [
            {
                "user_id": m.user_id,
                "name": m.display_name,
                "email": m.email,
                "role": m.role.value,
                "joined_at": m.joined_at,
            }
            for m in budget.members
        ],
        "invitations": [
            {
                "id": inv.id,
                "group_budget_id": inv.group_budget_id,
                "invited_email": inv.invited_email,
                "invited_by": inv.invited_by,
                "status": inv.status.value,
                "invited_at": inv.invited_at,
                "responded_at": inv.responded_at,
            }
            for inv in budget.invitations
        ],
    }


async def _load_budget(db: AsyncSession, group_budget_id: uuid.UUID) -> GroupBudget | None:
    result = await db.execute(
        select(GroupBudget)
        .where(GroupBudget.id == group_budget_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _can_view(budget: GroupBudget, user_id: uuid.UUID) -> bool:
    return budget.created_by == user_id or budget.member_for(user_id) is not None


async def _view_with_spend(
    db: AsyncSession, budget: GroupBudget, ledger: LedgerAccessor, timeout: float | None
) -> dict:
    summary = await compute_spent(
        db, budget.id, budget.period, budget.start_date, budget.end_date, budget.category_id,
        ledger=ledger, timeout=timeout,
    )
    return budget_view(budget, summary.spent)


async def create_group_budget(
    db: AsyncSession,
    owner: User,
    data: GroupBudgetCreate,
    *,
    directory: UserDirectory,
    categories: CategoryDirectory,
    timeout: float | None = None,
) -> dict:
    period = _validate(data)
    if data.category_id is not None and not await categories.exists(data.category_id):
        raise NotFound("Category not found")

    budget = GroupBudget(
        name=data.name.strip(),
        description=data.description,
        amount=data.amount,
        period=period,
        start_date=data.start_date,
        end_date=data.end_date,
        category_id=data.category_id,
        created_by=owner.id,
    )
    db.add(budget)
    await db.flush()

    # Captured up front: a failed invite below may roll back and expire loaded objects
    budget_id, owner_id = budget.id, owner.id
    db.add(GroupBudgetMember(group_budget_id=budget_id, user_id=owner_id, role=BudgetRole.owner))
    await db.commit()
    logger.info(f"Group budget {budget_id} created by {owner_id}")

    skipped: list[dict] = []
    seen: set[str] = set()
    for raw_email in data.invited_emails:
        email = normalize_email(raw_email)
        if email in seen:
            skipped.append({"email": raw_email, "kind": "duplicate", "message": "Listed more than once"})
            continue
        seen.add(email)
        try:
            await invite_user(db, budget_id, owner_id, email, directory=directory, timeout=timeout)
        except GroupBudgetError as e:
            logger.warning(f"Skipped initial invite {raw_email!r} for group budget {budget_id}: {e}")
            skipped.append({"email": raw_email, "kind": e.kind, "message": str(e)})

    budget = await _load_budget(db, budget_id)
    view = budget_view(budget, ZERO)
    view["skipped_invites"] = skipped
    return view


async def list_group_budgets(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    ledger: LedgerAccessor,
    timeout: float | None = None,
) -> list[dict]:
    member_of = select(GroupBudgetMember.group_budget_id).where(GroupBudgetMember.user_id == user_id)
    result = await db.execute(
        select(GroupBudget)
        .where(or_(GroupBudget.created_by == user_id, GroupBudget.id.in_(member_of)))
        .order_by(GroupBudget.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [await _view_with_spend(db, b, ledger, timeout) for b in result.scalars().all()]


async def get_group_budget(
    db: AsyncSession,
    group_budget_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    ledger: LedgerAccessor,
    timeout: float | None = None,
) -> dict:
    budget = await get_visible_budget(db, group_budget_id, user_id)
    return await _view_with_spend(db, budget, ledger, timeout)


async def get_visible_budget(db: AsyncSession, group_budget_id: uuid.UUID, user_id: uuid.UUID) -> GroupBudget:
    budget = await _load_budget(db, group_budget_id)
    if not budget:
        raise NotFound("Group budget not found")
    if not _can_view(budget, user_id):
        raise Forbidden("You are not a member of this group budget")
    return budget


async def delete_group_budget(db: AsyncSession, group_budget_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """
    Owner-only delete. Pending invitations are revoked rather than dropped, and
    every invitation and ledger row is detached from the budget, all in one
    commit under the budget's lock.
    """
    async with serialized_budget(db, group_budget_id):
        budget = await load_budget_for_update(db, group_budget_id)
        if not budget:
            raise NotFound("Group budget not found")
        if not budget.is_owned_by(user_id):
            raise Forbidden("Only the group budget owner can delete this group budget")

        await db.execute(
            update(Invitation)
            .where(
                Invitation.group_budget_id == group_budget_id,
                Invitation.status == InvitationStatus.pending,
            )
            .values(status=InvitationStatus.revoked, responded_at=datetime.now(timezone.utc))
        )
        await db.execute(
            update(Invitation).where(Invitation.group_budget_id == group_budget_id).values(group_budget_id=None)
        )
        await db.execute(
            update(Transaction).where(Transaction.group_budget_id == group_budget_id).values(group_budget_id=None)
        )
        await db.execute(delete(GroupBudgetMember).where(GroupBudgetMember.group_budget_id == group_budget_id))
        await db.execute(delete(GroupBudget).where(GroupBudget.id == group_budget_id))
        await db.commit()

    discard_budget_lock(group_budget_id)
    logger.info(f"Group budget {group_budget_id} deleted by {user_id}")


async def get_spend_summary(
    db: AsyncSession,
    group_budget_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    ledger: LedgerAccessor,
    timeout: float | None = None,
) -> dict:
    """Spend breakdown for audit, including the unclamped signed total."""
    budget = await get_visible_budget(db, group_budget_id, user_id)
    summary = await compute_spent(
        db, budget.id, budget.period, budget.start_date, budget.end_date, budget.category_id,
        ledger=ledger, timeout=timeout,
    )
    return {
        "group_budget_id": budget.id,
        "period": summary.period.value,
        "start_date": summary.start_date,
        "end_date": summary.end_date,
        "category_id": summary.category_id,
        "spent": summary.spent,
        "raw_total": summary.raw_total,
        "transaction_count": summary.transaction_count,
        "progress": progress_percentage(summary.spent, budget.amount),
    }
