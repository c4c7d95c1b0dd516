import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.invitation import InvitationStatus


class InviteRequest(BaseModel):
    email: EmailStr


class RespondRequest(BaseModel):
    accept: bool


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    group_budget_id: uuid.UUID | None = None
    invited_email: str
    invited_by: uuid.UUID
    status: InvitationStatus
    invited_at: datetime
    responded_at: datetime | None = None


class SkippedInvite(BaseModel):
    email: str
    kind: str
    message: str
