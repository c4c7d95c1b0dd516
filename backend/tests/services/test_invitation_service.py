import asyncio
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from app.core.errors import (
    AlreadyMember, EmailMismatch, Forbidden, InvalidState, NotFound, UnknownUser, Unavailable, ValidationError,
)
from app.models.group_budget import BudgetRole, GroupBudgetMember
from app.models.invitation import Invitation, InvitationStatus
from app.schemas.group_budget import GroupBudgetCreate
from app.services.directory_service import SqlUserDirectory
from app.services.group_budget_service import create_group_budget
from app.services.invitation_service import (
    invite_user, list_pending_invitations, respond_to_invitation, revoke_invitation, search_users,
)


async def make_budget(db, owner, directory):
    budget = await create_group_budget(
        db, owner,
        GroupBudgetCreate(
            name="Household", amount=Decimal("1000000"), period="monthly",
            start_date=date(2024, 6, 1), end_date=date(2024, 6, 30),
        ),
        directory=directory, categories=AsyncMock(),
    )
    return budget["id"]


async def make_budget_in(session_factory, owner):
    async with session_factory() as db:
        return await make_budget(db, owner, SqlUserDirectory(db))


async def count(db, model, *where):
    result = await db.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_invite_normalizes_email_and_is_pending(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)

    invitation = await invite_user(db, budget_id, users.alice.id, "  A@Example.COM ", directory=directory)
    assert invitation.invited_email == "a@example.com"
    assert invitation.status == InvitationStatus.pending
    assert invitation.responded_at is None
    assert invitation.invited_by == users.alice.id


@pytest.mark.asyncio
async def test_invite_twice_returns_same_pending_invitation(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)

    first = await invite_user(db, budget_id, users.alice.id, "newcomer@example.com", directory=directory)
    second = await invite_user(db, budget_id, users.alice.id, "NEWCOMER@example.com", directory=directory)
    # The repeat only read; its row lock must not outlive the call
    assert not db.in_transaction()
    assert first.id == second.id
    assert await count(db, Invitation, Invitation.group_budget_id == budget_id) == 1


@pytest.mark.asyncio
async def test_invite_existing_member_is_rejected(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)

    with pytest.raises(AlreadyMember):
        await invite_user(db, budget_id, users.alice.id, "alice@example.com", directory=directory)
    assert await count(db, Invitation, Invitation.group_budget_id == budget_id) == 0


@pytest.mark.asyncio
async def test_invite_requires_membership(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)

    with pytest.raises(Forbidden):
        await invite_user(db, budget_id, users.bob.id, "carol@example.com", directory=directory)


@pytest.mark.asyncio
async def test_regular_member_may_invite(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)
    await respond_to_invitation(db, invitation.id, "bob@example.com", True, directory=directory)

    by_bob = await invite_user(db, budget_id, users.bob.id, "carol@example.com", directory=directory)
    assert by_bob.invited_by == users.bob.id


@pytest.mark.asyncio
@pytest.mark.parametrize("email", [
    "", "not-an-email", "two@@example.com", "spaces in@example.com", "a@..com", "a@b..c", "<x>@y.z",
])
async def test_invite_rejects_malformed_email(db, users, email):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    with pytest.raises(ValidationError):
        await invite_user(db, budget_id, users.alice.id, email, directory=directory)


@pytest.mark.asyncio
async def test_invite_unknown_budget(db, users):
    with pytest.raises(NotFound):
        await invite_user(db, uuid.uuid4(), users.alice.id, "bob@example.com", directory=SqlUserDirectory(db))


@pytest.mark.asyncio
async def test_accept_creates_member_and_rejects_second_response(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "a@example.com", directory=directory)

    accepted = await respond_to_invitation(db, invitation.id, "A@example.com", True, directory=directory)
    assert accepted.status == InvitationStatus.accepted
    assert accepted.responded_at is not None

    result = await db.execute(
        select(GroupBudgetMember).where(
            GroupBudgetMember.group_budget_id == budget_id, GroupBudgetMember.user_id == users.ann.id,
        )
    )
    assert result.scalar_one().role == BudgetRole.member

    with pytest.raises(InvalidState):
        await respond_to_invitation(db, invitation.id, "a@example.com", True, directory=directory)
    with pytest.raises(InvalidState):
        await respond_to_invitation(db, invitation.id, "a@example.com", False, directory=directory)


@pytest.mark.asyncio
async def test_decline_only_changes_status(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)

    declined = await respond_to_invitation(db, invitation.id, "bob@example.com", False, directory=directory)
    assert declined.status == InvitationStatus.declined
    assert declined.responded_at is not None
    assert await count(db, GroupBudgetMember, GroupBudgetMember.group_budget_id == budget_id) == 1

    # A fresh invite is allowed once the previous one is terminal
    again = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)
    assert again.id != invitation.id


@pytest.mark.asyncio
async def test_respond_with_other_email_is_mismatch(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)

    with pytest.raises(EmailMismatch):
        await respond_to_invitation(db, invitation.id, "carol@example.com", True, directory=directory)
    await db.refresh(invitation)
    assert invitation.status == InvitationStatus.pending


@pytest.mark.asyncio
async def test_accept_by_unregistered_email_is_unknown_user(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "ghost@example.com", directory=directory)

    with pytest.raises(UnknownUser):
        await respond_to_invitation(db, invitation.id, "ghost@example.com", True, directory=directory)
    await db.refresh(invitation)
    assert invitation.status == InvitationStatus.pending


@pytest.mark.asyncio
async def test_respond_unknown_invitation(db, users):
    with pytest.raises(NotFound):
        await respond_to_invitation(db, uuid.uuid4(), "bob@example.com", True, directory=SqlUserDirectory(db))


@pytest.mark.asyncio
async def test_directory_timeout_leaves_invitation_pending(db, users, fake_directory):
    budget_id = await make_budget(db, users.alice, SqlUserDirectory(db))
    invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=SqlUserDirectory(db))

    slow = fake_directory.from_users(users.bob, delay=1)
    with pytest.raises(Unavailable):
        await respond_to_invitation(db, invitation.id, "bob@example.com", True, directory=slow, timeout=0.01)

    await db.refresh(invitation)
    assert invitation.status == InvitationStatus.pending
    assert await count(db, GroupBudgetMember, GroupBudgetMember.group_budget_id == budget_id) == 1


@pytest.mark.asyncio
async def test_concurrent_accepts_create_exactly_one_member(session_factory, users):
    async with session_factory() as db:
        directory = SqlUserDirectory(db)
        budget_id = await make_budget(db, users.alice, directory)
        invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)
        invitation_id = invitation.id

    async def accept():
        async with session_factory() as session:
            try:
                await respond_to_invitation(
                    session, invitation_id, "bob@example.com", True, directory=SqlUserDirectory(session)
                )
                return "accepted"
            except InvalidState:
                return "invalid_state"

    outcomes = await asyncio.gather(accept(), accept(), accept())
    assert sorted(outcomes) == ["accepted", "invalid_state", "invalid_state"]

    async with session_factory() as db:
        assert await count(
            db, GroupBudgetMember,
            GroupBudgetMember.group_budget_id == budget_id, GroupBudgetMember.user_id == users.bob.id,
        ) == 1


@pytest.mark.asyncio
async def test_revoke_by_owner(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    invitation = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)

    revoked = await revoke_invitation(db, invitation.id, users.alice.id)
    assert revoked.status == InvitationStatus.revoked
    assert revoked.responded_at is not None

    with pytest.raises(InvalidState):
        await revoke_invitation(db, invitation.id, users.alice.id)
    with pytest.raises(InvalidState):
        await respond_to_invitation(db, invitation.id, "bob@example.com", True, directory=directory)


@pytest.mark.asyncio
async def test_revoke_requires_owner(db, users):
    directory = SqlUserDirectory(db)
    budget_id = await make_budget(db, users.alice, directory)
    bob_invite = await invite_user(db, budget_id, users.alice.id, "bob@example.com", directory=directory)
    await respond_to_invitation(db, bob_invite.id, "bob@example.com", True, directory=directory)
    carol_invite = await invite_user(db, budget_id, users.bob.id, "carol@example.com", directory=directory)

    with pytest.raises(Forbidden):
        await revoke_invitation(db, carol_invite.id, users.bob.id)


@pytest.mark.asyncio
async def test_list_pending_invitations_for_email(db, users):
    directory = SqlUserDirectory(db)
    first = await make_budget(db, users.alice, directory)
    second = await make_budget(db, users.alice, directory)
    await invite_user(db, first, users.alice.id, "bob@example.com", directory=directory)
    declined = await invite_user(db, second, users.alice.id, "bob@example.com", directory=directory)
    await respond_to_invitation(db, declined.id, "bob@example.com", False, directory=directory)

    pending = await list_pending_invitations(db, "Bob@Example.com")
    assert [inv.group_budget_id for inv in pending] == [first]


@pytest.mark.asyncio
async def test_search_short_query_skips_directory(fake_directory, users):
    directory = fake_directory.from_users(users.alice, users.bob)
    assert await search_users(" b ", directory=directory) == []
    assert directory.search_calls == []


@pytest.mark.asyncio
async def test_search_excludes_requester_and_duplicate_emails(fake_directory, users):
    directory = fake_directory.from_users(users.alice, users.bob, users.carol)
    directory.identities.append(directory.identities[1].model_copy(update={"email": "BOB@example.com"}))

    results = await search_users("example", directory=directory, requester_id=users.alice.id)
    assert [r.email for r in results] == ["bob@example.com", "carol@example.com"]


@pytest.mark.asyncio
async def test_search_directory_timeout(fake_directory, users):
    directory = fake_directory.from_users(users.bob, delay=1)
    with pytest.raises(Unavailable):
        await search_users("bob", directory=directory, timeout=0.01)


@pytest.mark.asyncio
async def test_concurrent_invites_share_one_invitation(session_factory, users):
    budget_id = await make_budget_in(session_factory, users.alice)

    async def invite(email):
        async with session_factory() as session:
            invitation = await invite_user(session, budget_id, users.alice.id, email, directory=SqlUserDirectory(session))
            return invitation.id

    ids = await asyncio.gather(invite("dave@example.com"), invite("Dave@example.com"), invite(" dave@example.com"))
    assert len(set(ids)) == 1

    async with session_factory() as db:
        assert await count(db, Invitation, Invitation.group_budget_id == budget_id) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["%%", "__", "%_"])
async def test_search_treats_wildcards_literally(db, users, query):
    assert await search_users(query, directory=SqlUserDirectory(db)) == []
