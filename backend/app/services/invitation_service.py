import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AlreadyMember, EmailMismatch, Forbidden, InvalidState, NotFound, UnknownUser, ValidationError,
)
from app.core.locks import serialized_budget
from app.models.group_budget import GroupBudget, GroupBudgetMember, BudgetRole
from app.models.invitation import Invitation, InvitationStatus
from app.schemas.user import UserIdentity
from app.services.directory_service import UserDirectory
from app.utils.collaborator_utils import call_collaborator
from app.utils.email_utils import normalize_email, is_valid_email

logger = logging.getLogger(__name__)


async def load_budget_for_update(db: AsyncSession, group_budget_id: uuid.UUID) -> GroupBudget | None:
    """Re-read a budget and its members, row-locked for the rest of the transaction."""
    result = await db.execute(
        select(GroupBudget)
        .where(GroupBudget.id == group_budget_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _load_invitation_for_update(db: AsyncSession, invitation_id: uuid.UUID) -> Invitation | None:
    result = await db.execute(
        select(Invitation)
        .where(Invitation.id == invitation_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _pending_invitation(db: AsyncSession, group_budget_id: uuid.UUID, email: str) -> Invitation | None:
    result = await db.execute(
        select(Invitation).where(
            Invitation.group_budget_id == group_budget_id,
            Invitation.invited_email == email,
            Invitation.status == InvitationStatus.pending,
        )
    )
    return result.scalar_one_or_none()


def _ensure_pending(invitation: Invitation) -> None:
    if invitation.is_terminal:
        raise InvalidState(f"Invitation is already {invitation.status.value}")


async def search_users(
    query: str,
    *,
    directory: UserDirectory,
    requester_id: uuid.UUID | None = None,
    timeout: float | None = None,
) -> list[UserIdentity]:
    query = query.strip()
    if len(query) < settings.user_search_min_length:
        return []

    results = await call_collaborator(directory.search(query), "User directory", timeout)

    seen: set[str] = set()
    candidates = []
    for identity in results:
        email = normalize_email(identity.email)
        if identity.id == requester_id or email in seen:
            continue
        seen.add(email)
        candidates.append(identity)
    return candidates


async def invite_user(
    db: AsyncSession,
    group_budget_id: uuid.UUID,
    inviter_id: uuid.UUID,
    email: str,
    *,
    directory: UserDirectory,
    timeout: float | None = None,
) -> Invitation:
    """
    Issue a pending invitation, or return the one already pending for this email.

    Any member may invite. An email belonging to a current member is rejected.
    """
    invited_email = normalize_email(email)
    if not is_valid_email(invited_email):
        raise ValidationError(f"'{email}' is not a valid email address")

    async with serialized_budget(db, group_budget_id):
        budget = await load_budget_for_update(db, group_budget_id)
        if not budget:
            raise NotFound("Group budget not found")
        if budget.member_for(inviter_id) is None:
            raise Forbidden("Only members can invite to this group budget")

        if any(m.email == invited_email for m in budget.members):
            raise AlreadyMember(f"{invited_email} is already a member")
        identity = await call_collaborator(directory.resolve(invited_email), "User directory", timeout)
        if identity is not None and budget.member_for(identity.id) is not None:
            raise AlreadyMember(f"{invited_email} is already a member")

        existing = await _pending_invitation(db, group_budget_id, invited_email)
        if existing:
            return existing

        invitation = Invitation(
            group_budget_id=group_budget_id,
            invited_email=invited_email,
            invited_by=inviter_id,
            status=InvitationStatus.pending,
        )
        db.add(invitation)
        try:
            await db.commit()
        except IntegrityError:
            # Another worker inserted the pending row first
            await db.rollback()
            existing = await _pending_invitation(db, group_budget_id, invited_email)
            if existing is None:
                raise
            return existing

    logger.info(f"Invited {invited_email} to group budget {group_budget_id}")
    return invitation


async def respond_to_invitation(
    db: AsyncSession,
    invitation_id: uuid.UUID,
    responder_email: str,
    accept: bool,
    *,
    directory: UserDirectory,
    timeout: float | None = None,
) -> Invitation:
    """
    Accept or decline a pending invitation.

    Accepting binds the email to a directory identity and creates the member in
    the same commit as the status change.
    """
    invitation = await db.get(Invitation, invitation_id)
    if not invitation:
        raise NotFound("Invitation not found")
    if invitation.group_budget_id is None:
        # Budget was deleted; its invitations were revoked with it
        raise InvalidState(f"Invitation is already {invitation.status.value}")

    group_budget_id = invitation.group_budget_id
    async with serialized_budget(db, group_budget_id):
        invitation = await _load_invitation_for_update(db, invitation_id)
        if invitation is None:
            raise NotFound("Invitation not found")
        _ensure_pending(invitation)
        invited_email = invitation.invited_email
        if normalize_email(responder_email) != invited_email:
            raise EmailMismatch("This invitation was sent to a different email address")

        if accept:
            identity = await call_collaborator(
                directory.resolve(invited_email), "User directory", timeout
            )
            if identity is None:
                raise UnknownUser(f"No user is registered with {invited_email}")
            existing = await db.execute(
                select(GroupBudgetMember.id).where(
                    GroupBudgetMember.group_budget_id == group_budget_id,
                    GroupBudgetMember.user_id == identity.id,
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise AlreadyMember(f"{invited_email} is already a member")

            db.add(GroupBudgetMember(
                group_budget_id=group_budget_id,
                user_id=identity.id,
                role=BudgetRole.member,
            ))
            invitation.status = InvitationStatus.accepted
        else:
            invitation.status = InvitationStatus.declined
        invitation.responded_at = datetime.now(timezone.utc)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise AlreadyMember(f"{invited_email} is already a member")

    logger.info(f"Invitation {invitation_id} {invitation.status.value} for group budget {group_budget_id}")
    return invitation


async def revoke_invitation(db: AsyncSession, invitation_id: uuid.UUID, owner_id: uuid.UUID) -> Invitation:
    invitation = await db.get(Invitation, invitation_id)
    if not invitation:
        raise NotFound("Invitation not found")
    if invitation.group_budget_id is None:
        raise InvalidState(f"Invitation is already {invitation.status.value}")

    group_budget_id = invitation.group_budget_id
    async with serialized_budget(db, group_budget_id):
        budget = await load_budget_for_update(db, group_budget_id)
        if budget is None or not budget.is_owned_by(owner_id):
            raise Forbidden("Only the group budget owner can revoke invitations")
        invitation = await _load_invitation_for_update(db, invitation_id)
        if invitation is None:
            raise NotFound("Invitation not found")
        _ensure_pending(invitation)

        invitation.status = InvitationStatus.revoked
        invitation.responded_at = datetime.now(timezone.utc)
        await db.commit()

    logger.info(f"Invitation {invitation_id} revoked by owner of group budget {group_budget_id}")
    return invitation


async def list_pending_invitations(db: AsyncSession, email: str) -> list[Invitation]:
    result = await db.execute(
        select(Invitation)
        .where(
            Invitation.invited_email == normalize_email(email),
            Invitation.status == InvitationStatus.pending,
            Invitation.group_budget_id.is_not(None),
        )
        .order_by(Invitation.invited_at)
    )
    return list(result.scalars().all())
