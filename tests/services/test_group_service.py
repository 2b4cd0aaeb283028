from __future__ import annotations

import uuid

import pytest

from groupwatch.core.errors import ApplicationError, ErrorCode
from groupwatch.models.group import GroupInviteStatus, GroupRole
from groupwatch.services.group import InviteDecision
from tests.helpers import add_users, chat_service, group_service, join, make_user


@pytest.mark.asyncio
async def test_create_group_makes_creator_the_owner(db_session) -> None:
    alice = make_user("Alice", "alice")
    await add_users(db_session, alice)
    service = group_service(db_session)

    group = await service.create_group(alice, "  Friday   Movies ", "Weekly pick")

    assert group.name == "Friday Movies"
    assert group.owner_id == alice.id
    members = await service.list_members(alice, group.id)
    assert [(info.user.id, info.role) for info in members] == [(alice.id, GroupRole.OWNER)]
    assert members[0].handle == "alice"
    assert await service.member_count(group.id) == 1


@pytest.mark.asyncio
async def test_create_group_rejects_blank_name(db_session) -> None:
    alice = make_user("Alice")
    await add_users(db_session, alice)

    with pytest.raises(ApplicationError) as excinfo:
        await group_service(db_session).create_group(alice, "   ")

    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_invite_reject_then_reinvite_and_accept(db_session) -> None:
    alice = make_user("Alice", "alice")
    bob = make_user("Bob", "bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Sci-fi")

    first = await service.invite_member(alice, group.id, bob.id)
    incoming = await service.list_incoming_invites(bob)
    assert [invite.id for invite in incoming] == [first.id]

    outcome = await service.respond_to_invite(bob, first.id, InviteDecision.REJECT)
    assert outcome.invite.status == GroupInviteStatus.REJECTED
    assert await service.member_count(group.id) == 1
    assert await service.list_incoming_invites(bob) == []

    second = await service.invite_member(alice, group.id, bob.id)
    assert second.id != first.id
    outcome = await service.respond_to_invite(bob, second.id, InviteDecision.ACCEPT)

    assert outcome.group_id == group.id
    assert outcome.invite.status == GroupInviteStatus.ACCEPTED
    assert await service.member_count(group.id) == 2
    roles = {info.user.id: info.role for info in await service.list_members(bob, group.id)}
    assert roles == {alice.id: GroupRole.OWNER, bob.id: GroupRole.MEMBER}


@pytest.mark.asyncio
async def test_second_pending_invite_conflicts(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Horror")
    await service.invite_member(alice, group.id, bob.id)

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(alice, group.id, bob.id)

    assert excinfo.value.code == ErrorCode.INVITE_PENDING
    assert len(await service.list_pending_invites(alice, group.id)) == 1


@pytest.mark.asyncio
async def test_concurrent_invite_is_caught_by_the_store(db_session, monkeypatch) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Horror")
    await service.invite_member(alice, group.id, bob.id)

    async def _no_pending(group_id, invitee_id):
        return None

    monkeypatch.setattr(service.invite_repo, "get_pending", _no_pending)

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(alice, group.id, bob.id)

    assert excinfo.value.code == ErrorCode.INVITE_PENDING
    assert len(await service.invite_repo.list_pending_for_group(group.id)) == 1


@pytest.mark.asyncio
async def test_invite_rules(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")
    await add_users(db_session, alice, bob, carol)
    service = group_service(db_session)
    group = await service.create_group(alice, "Docs")
    await join(db_session, alice, bob, group.id)

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(alice, group.id, alice.id)
    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(alice, group.id, bob.id)
    assert excinfo.value.code == ErrorCode.ALREADY_MEMBER

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(alice, group.id, uuid.uuid4())
    assert excinfo.value.code == ErrorCode.USER_NOT_FOUND

    with pytest.raises(ApplicationError) as excinfo:
        await service.invite_member(bob, group.id, carol.id)
    assert excinfo.value.code == ErrorCode.FORBIDDEN


@pytest.mark.asyncio
async def test_only_invitee_can_answer_and_only_once(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")
    await add_users(db_session, alice, bob, carol)
    service = group_service(db_session)
    group = await service.create_group(alice, "Anime")
    invite = await service.invite_member(alice, group.id, bob.id)

    with pytest.raises(ApplicationError) as excinfo:
        await service.respond_to_invite(carol, invite.id, InviteDecision.ACCEPT)
    assert excinfo.value.code == ErrorCode.FORBIDDEN

    await service.respond_to_invite(bob, invite.id, InviteDecision.ACCEPT)

    with pytest.raises(ApplicationError) as excinfo:
        await service.respond_to_invite(bob, invite.id, InviteDecision.REJECT)
    assert excinfo.value.code == ErrorCode.INVITE_NOT_PENDING

    with pytest.raises(ApplicationError) as excinfo:
        await service.respond_to_invite(bob, uuid.uuid4(), InviteDecision.ACCEPT)
    assert excinfo.value.code == ErrorCode.INVITE_NOT_FOUND


@pytest.mark.asyncio
async def test_owner_cannot_leave_but_members_can(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Classics")
    await join(db_session, alice, bob, group.id)

    with pytest.raises(ApplicationError) as excinfo:
        await service.leave_group(alice, group.id)
    assert excinfo.value.code == ErrorCode.OWNER_CANNOT_LEAVE

    await service.leave_group(bob, group.id)
    assert await service.member_count(group.id) == 1

    with pytest.raises(ApplicationError) as excinfo:
        await service.list_members(bob, group.id)
    assert excinfo.value.code == ErrorCode.NOT_A_MEMBER


@pytest.mark.asyncio
async def test_remove_member_is_owner_only(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")
    await add_users(db_session, alice, bob, carol)
    service = group_service(db_session)
    group = await service.create_group(alice, "Westerns")
    await join(db_session, alice, bob, group.id)
    await join(db_session, alice, carol, group.id)

    with pytest.raises(ApplicationError) as excinfo:
        await service.remove_member(bob, group.id, carol.id)
    assert excinfo.value.code == ErrorCode.FORBIDDEN

    with pytest.raises(ApplicationError) as excinfo:
        await service.remove_member(alice, group.id, alice.id)
    assert excinfo.value.code == ErrorCode.CANNOT_REMOVE_OWNER

    await service.remove_member(alice, group.id, carol.id)
    assert await service.member_count(group.id) == 2


@pytest.mark.asyncio
async def test_rename_keeps_description_when_omitted(db_session) -> None:
    alice = make_user("Alice")
    await add_users(db_session, alice)
    service = group_service(db_session)
    group = await service.create_group(alice, "Old name", "Keep me")

    renamed = await service.rename_group(alice, group.id, "New name")

    assert renamed.name == "New name"
    assert renamed.description == "Keep me"


@pytest.mark.asyncio
async def test_delete_group_hides_it_and_drops_pending_invites(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Temporary")
    invite = await service.invite_member(alice, group.id, bob.id)

    await service.delete_group(alice, group.id)

    assert await service.list_groups(alice) == []
    assert await service.list_incoming_invites(bob) == []
    with pytest.raises(ApplicationError) as excinfo:
        await service.respond_to_invite(bob, invite.id, InviteDecision.ACCEPT)
    assert excinfo.value.code == ErrorCode.INVITE_NOT_FOUND
    with pytest.raises(ApplicationError) as excinfo:
        await service.list_members(alice, group.id)
    assert excinfo.value.code == ErrorCode.GROUP_NOT_FOUND


@pytest.mark.asyncio
async def test_list_groups_reports_role_counts_and_unseen(db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    await add_users(db_session, alice, bob)
    service = group_service(db_session)
    group = await service.create_group(alice, "Shared")
    await join(db_session, alice, bob, group.id)
    await chat_service(db_session).send_message(alice, group.id, "Anyone up for tonight?")

    items = await service.list_groups(bob)

    assert len(items) == 1
    item = items[0]
    assert item.group.id == group.id
    assert item.role == GroupRole.MEMBER
    assert item.member_count == 2
    assert item.unseen_count == 1
    assert (await service.list_groups(alice))[0].unseen_count == 0
