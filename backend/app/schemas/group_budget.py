import uuid
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.schemas.category import CategoryInfo
from app.schemas.invitation import InvitationResponse, SkippedInvite


class GroupBudgetCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    amount: Decimal
    # Plain string so an unknown period surfaces as a validation error kind
    period: str = "monthly"
    start_date: date
    end_date: date
    category_id: uuid.UUID | None = None
    invited_emails: list[str] = []


class CreatorResponse(BaseModel):
    id: uuid.UUID
    name: str


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    name: str
    email: str | None = None
    role: str
    joined_at: datetime


class GroupBudgetResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    amount: Decimal
    period: str
    start_date: date
    end_date: date
    category_id: uuid.UUID | None = None
    category: CategoryInfo | None = None
    created_by: uuid.UUID
    creator: CreatorResponse
    created_at: datetime
    spent: Decimal
    progress: float
    members: list[MemberResponse] = []
    invitations: list[InvitationResponse] = []


class GroupBudgetCreateResponse(GroupBudgetResponse):
    skipped_invites: list[SkippedInvite] = []


class SpendSummaryResponse(BaseModel):
    group_budget_id: uuid.UUID
    period: str
    start_date: date
    end_date: date
    category_id: uuid.UUID | None = None
    spent: Decimal
    raw_total: Decimal
    transaction_count: int
    progress: float
