import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.dependencies import get_categories, get_directory, get_ledger
from app.core.errors import GroupBudgetError, to_http_exception
from app.models.user import User
from app.schemas.group_budget import (
    GroupBudgetCreate, GroupBudgetCreateResponse, GroupBudgetResponse, SpendSummaryResponse,
)
from app.schemas.invitation import InviteRequest, InvitationResponse
from app.services.category_service import CategoryDirectory
from app.services.directory_service import UserDirectory
from app.services.group_budget_service import (
    create_group_budget, list_group_budgets, get_group_budget, delete_group_budget, get_spend_summary,
)
from app.services.invitation_service import invite_user
from app.services.ledger_service import LedgerAccessor

router = APIRouter(prefix="/api/group-budgets", tags=["group-budgets"])


@router.post("", response_model=GroupBudgetCreateResponse, status_code=201)
async def create(
    body: GroupBudgetCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    directory: UserDirectory = Depends(get_directory),
    categories: CategoryDirectory = Depends(get_categories),
):
    try:
        return await create_group_budget(db, user, body, directory=directory, categories=categories)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.get("", response_model=list[GroupBudgetResponse])
async def list_budgets(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerAccessor = Depends(get_ledger),
):
    try:
        return await list_group_budgets(db, user.id, ledger=ledger)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.get("/{group_budget_id}", response_model=GroupBudgetResponse)
async def get(
    group_budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerAccessor = Depends(get_ledger),
):
    try:
        return await get_group_budget(db, group_budget_id, user.id, ledger=ledger)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.get("/{group_budget_id}/spending", response_model=SpendSummaryResponse)
async def spending(
    group_budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerAccessor = Depends(get_ledger),
):
    try:
        return await get_spend_summary(db, group_budget_id, user.id, ledger=ledger)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.delete("/{group_budget_id}", status_code=204)
async def delete(
    group_budget_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_group_budget(db, group_budget_id, user.id)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.post("/{group_budget_id}/invitations", response_model=InvitationResponse, status_code=201)
async def invite(
    group_budget_id: uuid.UUID,
    body: InviteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    directory: UserDirectory = Depends(get_directory),
):
    try:
        return await invite_user(db, group_budget_id, user.id, body.email, directory=directory)
    except GroupBudgetError as e:
        raise to_http_exception(e)
