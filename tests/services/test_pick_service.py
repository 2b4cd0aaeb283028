from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from groupwatch.core.errors import ApplicationError, ErrorCode
from groupwatch.models.pick import MediaType
from groupwatch.services.picks import (
    DUPLICATE_PICK_MESSAGE,
    PickSort,
    PickView,
    is_pick_visible,
    required_watched_count,
    sort_picks,
)
from tests.helpers import add_users, group_service, join, make_user, pick_service


async def _two_member_group(db_session):
    alice = make_user("Alice", "alice")
    bob = make_user("Bob", "bob")
    await add_users(db_session, alice, bob)
    group = await group_service(db_session).create_group(alice, "Movie night")
    await join(db_session, alice, bob, group.id)
    return alice, bob, group


@pytest.mark.asyncio
async def test_pick_lifecycle_until_everyone_watched(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)

    pick = await service.add_pick(
        alice,
        group.id,
        media_type=MediaType.MOVIE,
        media_id="329865",
        title="Arrival",
        release_year=2016,
    )
    await service.vote_on_pick(alice, group.id, pick.id, 1)
    await service.vote_on_pick(bob, group.id, pick.id, 1)

    [view] = await service.list_visible_picks(bob, group.id)
    assert view.pick.id == pick.id
    assert (view.upvotes, view.downvotes, view.score) == (2, 0, 2)
    assert view.viewer_vote == 1
    assert view.required_watched_count == 2

    status = await service.mark_watched(alice, group.id, pick.id)
    assert (status.watched_count, status.required_watched_count, status.visible) == (1, 2, True)
    [view] = await service.list_visible_picks(alice, group.id)
    assert view.watched_by_viewer is True

    status = await service.mark_watched(alice, group.id, pick.id)
    assert status.watched_count == 1

    status = await service.mark_watched(bob, group.id, pick.id)
    assert (status.watched_count, status.visible) == (2, False)
    assert await service.list_visible_picks(alice, group.id) == []
    assert pick.completed_at is not None


@pytest.mark.asyncio
async def test_completed_pick_stays_hidden_after_new_member_joins(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    carol = make_user("Carol")
    await add_users(db_session, carol)
    service = pick_service(db_session)
    pick = await service.add_pick(
        alice, group.id, media_type="movie", media_id="1", title="Heat"
    )
    await service.mark_watched(alice, group.id, pick.id)
    await service.mark_watched(bob, group.id, pick.id)

    await join(db_session, alice, carol, group.id)

    assert await service.list_visible_picks(carol, group.id) == []


@pytest.mark.asyncio
async def test_pick_reaching_threshold_after_member_leaves_is_latched(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    pick = await service.add_pick(alice, group.id, media_type="show", media_id="7", title="Dark")
    await service.mark_watched(alice, group.id, pick.id)

    await group_service(db_session).leave_group(bob, group.id)

    assert await service.list_visible_picks(alice, group.id) == []
    assert pick.completed_at is not None


@pytest.mark.asyncio
async def test_duplicate_pick_conflicts(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    await service.add_pick(alice, group.id, media_type="movie", media_id="42", title="Alien")

    with pytest.raises(ApplicationError) as excinfo:
        await service.add_pick(bob, group.id, media_type="movie", media_id="42", title="Alien")

    assert excinfo.value.code == ErrorCode.DUPLICATE_PICK
    assert excinfo.value.message == DUPLICATE_PICK_MESSAGE


@pytest.mark.asyncio
async def test_same_media_id_with_other_type_is_a_different_pick(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    service = pick_service(db_session)

    await service.add_pick(alice, group.id, media_type="movie", media_id="42", title="Alien")
    await service.add_pick(alice, group.id, media_type="show", media_id="42", title="Alien: Earth")

    assert len(await service.list_visible_picks(alice, group.id)) == 2


@pytest.mark.asyncio
async def test_concurrent_duplicate_pick_is_caught_by_the_store(db_session, monkeypatch) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    await service.add_pick(alice, group.id, media_type="movie", media_id="42", title="Alien")

    async def _not_found(group_id, media_type, media_id):
        return None

    monkeypatch.setattr(service.pick_repo, "find_by_media", _not_found)

    with pytest.raises(ApplicationError) as excinfo:
        await service.add_pick(bob, group.id, media_type="movie", media_id="42", title="Alien")

    assert excinfo.value.code == ErrorCode.DUPLICATE_PICK
    assert len(await service.list_visible_picks(alice, group.id)) == 1


@pytest.mark.asyncio
async def test_vote_upsert_and_clear(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    pick = await service.add_pick(alice, group.id, media_type="movie", media_id="5", title="Up")

    await service.vote_on_pick(bob, group.id, pick.id, 1)
    await service.vote_on_pick(bob, group.id, pick.id, 1)
    [view] = await service.list_visible_picks(bob, group.id)
    assert (view.upvotes, view.downvotes) == (1, 0)

    await service.vote_on_pick(bob, group.id, pick.id, -1)
    [view] = await service.list_visible_picks(bob, group.id)
    assert (view.upvotes, view.downvotes, view.viewer_vote) == (0, 1, -1)

    await service.clear_vote(bob, group.id, pick.id)
    await service.clear_vote(bob, group.id, pick.id)
    [view] = await service.list_visible_picks(bob, group.id)
    assert (view.upvotes, view.downvotes, view.viewer_vote) == (0, 0, None)


@pytest.mark.asyncio
async def test_vote_value_must_be_unit(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    pick = await service.add_pick(alice, group.id, media_type="movie", media_id="5", title="Up")

    with pytest.raises(ApplicationError) as excinfo:
        await service.vote_on_pick(alice, group.id, pick.id, 2)

    assert excinfo.value.code == ErrorCode.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_outsiders_are_rejected_before_anything_else(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    mallory = make_user("Mallory")
    await add_users(db_session, mallory)
    service = pick_service(db_session)

    with pytest.raises(ApplicationError) as excinfo:
        await service.add_pick(mallory, group.id, media_type="bogus", media_id="", title="")

    assert excinfo.value.code == ErrorCode.NOT_A_MEMBER


@pytest.mark.asyncio
async def test_pick_from_another_group_is_not_found(db_session) -> None:
    alice, _, group = await _two_member_group(db_session)
    other = await group_service(db_session).create_group(alice, "Other")
    service = pick_service(db_session)
    foreign = await service.add_pick(alice, other.id, media_type="movie", media_id="9", title="Ran")

    with pytest.raises(ApplicationError) as excinfo:
        await service.mark_watched(alice, group.id, foreign.id)

    assert excinfo.value.code == ErrorCode.PICK_NOT_FOUND


@pytest.mark.asyncio
async def test_delete_pick_by_sender_or_owner_only(db_session) -> None:
    alice, bob, group = await _two_member_group(db_session)
    service = pick_service(db_session)
    by_alice = await service.add_pick(alice, group.id, media_type="movie", media_id="1", title="A")
    by_bob = await service.add_pick(bob, group.id, media_type="movie", media_id="2", title="B")

    with pytest.raises(ApplicationError) as excinfo:
        await service.delete_pick(bob, group.id, by_alice.id)
    assert excinfo.value.code == ErrorCode.FORBIDDEN

    await service.delete_pick(alice, group.id, by_bob.id)
    remaining = await service.list_visible_picks(alice, group.id)
    assert [view.pick.id for view in remaining] == [by_alice.id]


def test_required_watched_count_never_below_one() -> None:
    assert required_watched_count(0) == 1
    assert required_watched_count(1) == 1
    assert required_watched_count(4) == 4


def test_is_pick_visible_respects_latch() -> None:
    open_pick = SimpleNamespace(completed_at=None)
    done_pick = SimpleNamespace(completed_at=datetime.now(tz=timezone.utc))

    assert is_pick_visible(open_pick, 1, 2) is True
    assert is_pick_visible(open_pick, 2, 2) is False
    assert is_pick_visible(done_pick, 0, 5) is False


def _view(title: str, score: int, age_minutes: int) -> PickView:
    created = datetime(2026, 1, 1, tzinfo=timezone.utc) - timedelta(minutes=age_minutes)
    pick = SimpleNamespace(title=title, created_at=created)
    return PickView(
        pick=pick,  # type: ignore[arg-type]
        upvotes=max(score, 0),
        downvotes=max(-score, 0),
        viewer_vote=None,
        watched_count=0,
        required_watched_count=2,
        watched_by_viewer=False,
    )


def test_sort_by_score_breaks_ties_newest_first() -> None:
    views = [_view("old", 1, 30), _view("top", 3, 20), _view("new", 1, 10), _view("low", -1, 0)]

    by_score = [view.pick.title for view in sort_picks(views, PickSort.SCORE)]
    newest = [view.pick.title for view in sort_picks(views, PickSort.NEWEST)]

    assert by_score == ["top", "new", "old", "low"]
    assert newest == ["low", "new", "top", "old"]
