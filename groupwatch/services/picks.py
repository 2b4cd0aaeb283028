"""Pick ledger: proposals, votes and the watched threshold."""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from groupwatch.models.base import ensure_aware
from groupwatch.models.group import GroupRole
from groupwatch.models.pick import (
    MEDIA_ID_MAX_LENGTH,
    PICK_NOTE_MAX_LENGTH,
    PICK_POSTER_MAX_LENGTH,
    PICK_TITLE_MAX_LENGTH,
    MediaType,
    Pick,
)
from groupwatch.models.user import User
from groupwatch.repositories.base import DuplicateRecordError
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository
from groupwatch.repositories.pick import (
    PickRepository,
    PickStatsRow,
    PickVoteRepository,
    PickWatchRepository,
)
from groupwatch.services.access import GroupAccess

logger = logging.getLogger(__name__)

DUPLICATE_PICK_MESSAGE = "This title is already in the group picks."
VOTE_VALUES = frozenset({-1, 1})


class PickSort(str, enum.Enum):
    SCORE = "score"
    NEWEST = "newest"


@dataclass(slots=True)
class PickView:
    """A visible pick with aggregates as seen by one viewer."""

    pick: Pick
    upvotes: int
    downvotes: int
    viewer_vote: int | None
    watched_count: int
    required_watched_count: int
    watched_by_viewer: bool

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


@dataclass(slots=True)
class WatchStatus:
    pick_id: uuid.UUID
    watched_count: int
    required_watched_count: int
    visible: bool


def required_watched_count(member_count: int) -> int:
    """Members that must watch a pick before it leaves the active list; never below 1."""
    return max(1, member_count)


def is_pick_visible(pick: Pick, watched_count: int, member_count: int) -> bool:
    if pick.completed_at is not None:
        return False
    return watched_count < required_watched_count(member_count)


class PickService:
    """Coordinate pick proposals, voting and watch tracking."""

    def __init__(
        self,
        group_repo: GroupRepository,
        member_repo: GroupMemberRepository,
        pick_repo: PickRepository,
        vote_repo: PickVoteRepository,
        watch_repo: PickWatchRepository,
    ) -> None:
        self.member_repo = member_repo
        self.pick_repo = pick_repo
        self.vote_repo = vote_repo
        self.watch_repo = watch_repo
        self.access = GroupAccess(group_repo, member_repo)

    @property
    def session(self) -> AsyncSession:
        """Expose shared session for transaction control."""
        return self.member_repo.session

    async def add_pick(
        self,
        sender: User,
        group_id: uuid.UUID,
        *,
        media_type: MediaType | str,
        media_id: str,
        title: str,
        poster_path: str | None = None,
        release_year: int | None = None,
        note: str | None = None,
    ) -> Pick:
        await self.access.ensure_member(group_id, sender)

        kind = _coerce_media_type(media_type)
        media_key = _require_text(media_id, "media_id", MEDIA_ID_MAX_LENGTH)
        clean_title = _require_text(title, "title", PICK_TITLE_MAX_LENGTH)
        clean_poster = _optional_text(poster_path, "poster_path", PICK_POSTER_MAX_LENGTH)
        clean_note = _optional_text(note, "note", PICK_NOTE_MAX_LENGTH)

        if await self.pick_repo.find_by_media(group_id, kind, media_key) is not None:
            raise self._duplicate_pick()
        try:
            pick = await self.pick_repo.create(
                group_id=group_id,
                sender_id=sender.id,
                media_type=kind,
                media_id=media_key,
                title=clean_title,
                poster_path=clean_poster,
                release_year=release_year,
                note=clean_note,
            )
        except DuplicateRecordError as exc:
            raise self._duplicate_pick() from exc

        logger.info("Pick added", extra={"group_id": str(group_id), "pick_id": str(pick.id)})
        return pick

    async def vote_on_pick(
        self,
        voter: User,
        group_id: uuid.UUID,
        pick_id: uuid.UUID,
        value: int,
    ) -> int:
        """Upsert the caller's vote; repeating the same value changes nothing."""
        await self.access.ensure_member(group_id, voter)
        if value not in VOTE_VALUES:
            raise ValidationError("Vote value must be 1 or -1.", details={"value": value})
        pick = await self._get_pick(group_id, pick_id)

        existing = await self.vote_repo.get(pick.id, voter.id)
        if existing is None:
            try:
                await self.vote_repo.create(pick_id=pick.id, user_id=voter.id, value=value)
                return value
            except DuplicateRecordError:
                existing = await self.vote_repo.get(pick.id, voter.id)
                if existing is None:
                    raise
        if existing.value != value:
            await self.vote_repo.set_value(existing, value)
        return value

    async def clear_vote(self, voter: User, group_id: uuid.UUID, pick_id: uuid.UUID) -> None:
        await self.access.ensure_member(group_id, voter)
        pick = await self._get_pick(group_id, pick_id)
        await self.vote_repo.clear(pick.id, voter.id)

    async def mark_watched(
        self,
        viewer: User,
        group_id: uuid.UUID,
        pick_id: uuid.UUID,
    ) -> WatchStatus:
        """Record a watch mark (repeat calls are no-ops) and latch completion at the threshold."""
        await self.access.ensure_member(group_id, viewer)
        pick = await self._get_pick(group_id, pick_id)

        if not await self.watch_repo.exists_for(pick.id, viewer.id):
            try:
                await self.watch_repo.create(pick_id=pick.id, user_id=viewer.id)
            except DuplicateRecordError:
                logger.debug("Watch mark already recorded", extra={"pick_id": str(pick.id)})

        watched = await self.watch_repo.count(pick.id)
        members = await self.member_repo.count(group_id)
        required = required_watched_count(members)
        if watched >= required:
            await self.pick_repo.latch_completed(pick)
            logger.info("Pick completed", extra={"pick_id": str(pick.id)})
        return WatchStatus(
            pick_id=pick.id,
            watched_count=watched,
            required_watched_count=required,
            visible=is_pick_visible(pick, watched, members),
        )

    async def list_visible_picks(
        self,
        viewer: User,
        group_id: uuid.UUID,
        sort: PickSort = PickSort.SCORE,
    ) -> list[PickView]:
        """
        Active picks with aggregates. The threshold is recomputed from the live
        member count; picks that reach it are latched and never reappear.
        Loading picks moves the viewer's seen marker.
        """
        await self.access.ensure_member(group_id, viewer)
        member_count = await self.member_repo.count(group_id)
        required = required_watched_count(member_count)

        views: list[PickView] = []
        for row in await self.pick_repo.list_open_with_stats(group_id, viewer.id):
            if row.watched_count >= required:
                await self.pick_repo.latch_completed(row.pick)
                continue
            views.append(_to_view(row, required))

        await self.member_repo.mark_seen(group_id, viewer.id)
        return sort_picks(views, sort)

    async def delete_pick(self, caller: User, group_id: uuid.UUID, pick_id: uuid.UUID) -> None:
        """The sender or the group owner may withdraw a pick."""
        _, membership = await self.access.ensure_member(group_id, caller)
        pick = await self._get_pick(group_id, pick_id)
        if pick.sender_id != caller.id and membership.role != GroupRole.OWNER:
            raise PermissionDeniedError(
                code=ErrorCode.FORBIDDEN,
                message="Only the sender or the group owner can remove this pick.",
            )
        await self.pick_repo.remove(pick)

    async def _get_pick(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> Pick:
        pick = await self.pick_repo.get_in_group(group_id, pick_id)
        if pick is None:
            raise NotFoundError(code=ErrorCode.PICK_NOT_FOUND, message="Pick not found.")
        return pick

    @staticmethod
    def _duplicate_pick() -> ConflictError:
        return ConflictError(code=ErrorCode.DUPLICATE_PICK, message=DUPLICATE_PICK_MESSAGE)


def sort_picks(views: list[PickView], sort: PickSort) -> list[PickView]:
    # newest first is the base order; sorted() is stable so score ties keep it
    newest_first = sorted(
        views,
        key=lambda view: ensure_aware(view.pick.created_at),
        reverse=True,
    )
    if sort == PickSort.NEWEST:
        return newest_first
    return sorted(newest_first, key=lambda view: view.score, reverse=True)


def _to_view(row: PickStatsRow, required: int) -> PickView:
    return PickView(
        pick=row.pick,
        upvotes=row.upvotes,
        downvotes=row.downvotes,
        viewer_vote=row.viewer_vote,
        watched_count=row.watched_count,
        required_watched_count=required,
        watched_by_viewer=row.watched_by_viewer,
    )


def _coerce_media_type(value: MediaType | str) -> MediaType:
    try:
        return MediaType(value)
    except ValueError as exc:
        raise ValidationError(
            "Media type must be 'movie' or 'show'.",
            details={"media_type": str(value)},
        ) from exc


def _require_text(value: str | None, field: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be empty.", details={"field": field})
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters.",
            details={"field": field},
        )
    return cleaned


def _optional_text(value: str | None, field: str, max_length: int) -> str | None:
    if value is None or not value.strip():
        return None
    return _require_text(value, field, max_length)


__all__ = [
    "DUPLICATE_PICK_MESSAGE",
    "PickService",
    "PickSort",
    "PickView",
    "WatchStatus",
    "is_pick_visible",
    "required_watched_count",
    "sort_picks",
]
