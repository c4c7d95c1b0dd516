import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.dependencies import get_directory
from app.core.errors import GroupBudgetError, to_http_exception
from app.models.user import User
from app.schemas.invitation import InvitationResponse, RespondRequest
from app.services.directory_service import UserDirectory
from app.services.invitation_service import (
    list_pending_invitations, respond_to_invitation, revoke_invitation,
)

router = APIRouter(prefix="/api/invitations", tags=["invitations"])


@router.get("", response_model=list[InvitationResponse])
async def list_mine(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_pending_invitations(db, user.email)


@router.post("/{invitation_id}/respond", response_model=InvitationResponse)
async def respond(
    invitation_id: uuid.UUID,
    body: RespondRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    directory: UserDirectory = Depends(get_directory),
):
    try:
        return await respond_to_invitation(db, invitation_id, user.email, body.accept, directory=directory)
    except GroupBudgetError as e:
        raise to_http_exception(e)


@router.post("/{invitation_id}/revoke", response_model=InvitationResponse)
async def revoke(
    invitation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await revoke_invitation(db, invitation_id, user.id)
    except GroupBudgetError as e:
        raise to_http_exception(e)
