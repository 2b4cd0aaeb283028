from __future__ import annotations

import uuid

import pytest

from groupwatch.core.errors import ApplicationError, ErrorCode
from groupwatch.models.pick import MediaType
from groupwatch.services.chat import REACTION_OPTIONS, REPLY_PREVIEW_MAX_LENGTH, SharedMedia
from tests.helpers import add_users, chat_service, group_service, join, make_user


async def _two_member_group(db_session):
    alice = make_user("Alice", "alice")
    bob = make_user("Bob", "bob")
    await add_users(db_session, alice, bob)
    group = await group_service(db_session).create_group(alice, "Chatty")
    await join(db_session, alice, bob, group.id)
    return alice, bob, group


@pytest.mark.asyncio
async def test_messages_are_listed_in_chronological_order(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)

    await service.send_message(alice, group.id, "first")
    await service.send_message(bob, group.id, "second")
    await service.send_message(alice, group.id, "third")

    views = await service.list_messages(bob, group.id)
    assert [view.message.body for view in views] == ["first", "second", "third"]
    assert [view.sender_name for view in views] == ["Alice", "Bob", "Alice"]

    latest = await service.list_messages(bob, group.id, limit=2)
    assert [view.message.body for view in latest] == ["second", "third"]


@pytest.mark.asyncio
async def test_body_is_stored_as_typed(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)

    message = await chat_service(db_session).send_message(alice, group.id, "  spaced  out ")

    assert message.body == "  spaced  out "


@pytest.mark.asyncio
async def test_empty_message_is_rejected(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    service = chat_service(db_session)

    with pytest.raises(ApplicationError) as excinfo:
        await service.send_message(alice, group.id, "   ")
    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR

    with pytest.raises(ApplicationError) as excinfo:
        await service.send_message(alice, group.id, "x" * 1201)
    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_shared_title_without_text(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    media = SharedMedia(
        media_type=MediaType.MOVIE,
        media_id="329865",
        title="Arrival",
        poster_path="/arrival.jpg",
        release_year=2016,
    )

    await service.send_message(alice, group.id, None, shared_media=media)

    [view] = await service.list_messages(bob, group.id)
    assert view.message.body is None
    assert view.shared_media == media
    assert [segment.text for segment in view.segments] == [""]


@pytest.mark.asyncio
async def test_reply_to_a_reply_points_at_the_root(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    root = await service.send_message(alice, group.id, "What should we watch?")
    reply = await service.send_message(bob, group.id, "Arrival!", reply_to_id=root.id)

    nested = await service.send_message(alice, group.id, "Agreed", reply_to_id=reply.id)

    assert reply.reply_to_id == root.id
    assert nested.reply_to_id == root.id
    views = {view.message.id: view for view in await service.list_messages(alice, group.id)}
    preview = views[nested.id].reply_preview
    assert preview is not None
    assert preview.message_id == root.id
    assert preview.sender_name == "Alice"
    assert preview.text == "What should we watch?"


@pytest.mark.asyncio
async def test_reply_preview_is_truncated(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    root = await service.send_message(alice, group.id, "a" * 300)
    reply = await service.send_message(bob, group.id, "ok", reply_to_id=root.id)

    views = {view.message.id: view for view in await service.list_messages(bob, group.id)}

    text = views[reply.id].reply_preview.text
    assert len(text) == REPLY_PREVIEW_MAX_LENGTH
    assert text.endswith("…")


@pytest.mark.asyncio
async def test_reply_target_must_be_in_the_group(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    other = await group_service(db_session).create_group(alice, "Elsewhere")
    service = chat_service(db_session)
    foreign = await service.send_message(alice, other.id, "hi")

    with pytest.raises(ApplicationError) as excinfo:
        await service.send_message(alice, group.id, "reply", reply_to_id=foreign.id)

    assert excinfo.value.code == ErrorCode.MESSAGE_NOT_FOUND


@pytest.mark.asyncio
async def test_toggle_reaction_round_trip(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    message = await service.send_message(alice, group.id, "Popcorn ready")
    heart, laugh = REACTION_OPTIONS[0], REACTION_OPTIONS[1]

    assert await service.toggle_reaction(bob, group.id, message.id, laugh) is True
    assert await service.toggle_reaction(bob, group.id, message.id, heart) is True
    assert await service.toggle_reaction(alice, group.id, message.id, heart) is True

    [view] = await service.list_messages(bob, group.id)
    assert [(r.value, r.count, r.reacted_by_viewer) for r in view.reactions] == [
        (heart, 2, True),
        (laugh, 1, True),
    ]

    assert await service.toggle_reaction(bob, group.id, message.id, heart) is False
    [view] = await service.list_messages(bob, group.id)
    assert [(r.value, r.count, r.reacted_by_viewer) for r in view.reactions] == [
        (heart, 1, False),
        (laugh, 1, True),
    ]


@pytest.mark.asyncio
async def test_unknown_reaction_is_rejected(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    message = await service.send_message(alice, group.id, "hi")

    with pytest.raises(ApplicationError) as excinfo:
        await service.toggle_reaction(alice, group.id, message.id, "🍕")
    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR

    with pytest.raises(ApplicationError) as excinfo:
        await service.toggle_reaction(alice, group.id, uuid.uuid4(), REACTION_OPTIONS[0])
    assert excinfo.value.code == ErrorCode.MESSAGE_NOT_FOUND


@pytest.mark.asyncio
async def test_unseen_count_clears_when_messages_are_loaded(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)

    await service.send_message(alice, group.id, "one")
    await service.send_message(alice, group.id, "two")

    assert await service.unseen_count(bob, group.id) == 2
    assert await service.unseen_count(alice, group.id) == 0

    await service.list_messages(bob, group.id)
    assert await service.unseen_count(bob, group.id) == 0


@pytest.mark.asyncio
async def test_mentions_resolve_against_current_members(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = chat_service(db_session)
    await service.send_message(alice, group.id, "Hey @Bob and @carol, check this")

    [view] = await service.list_messages(alice, group.id)

    assert [(s.text, s.is_mention) for s in view.segments] == [
        ("Hey ", False),
        ("@Bob", True),
        (" and @carol, check this", False),
    ]


@pytest.mark.asyncio
async def test_non_members_cannot_read_chat(db_session) -> None:
    _, _, group = await _two_member_group(db_session)
    mallory = make_user("Mallory")
    await add_users(db_session, mallory)

    with pytest.raises(ApplicationError) as excinfo:
        await chat_service(db_session).list_messages(mallory, group.id)

    assert excinfo.value.code == ErrorCode.NOT_A_MEMBER
