"""Repositories for picks, votes and watch marks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, delete, exists, func, select
from sqlalchemy.orm import selectinload

from groupwatch.models.base import utcnow
from groupwatch.models.pick import MediaType, Pick, PickVote, PickWatch
from groupwatch.repositories.base import BaseRepository


@dataclass(slots=True)
class PickStatsRow:
    """A pick with its vote and watch aggregates, seen from one viewer."""

    pick: Pick
    upvotes: int
    downvotes: int
    viewer_vote: int | None
    watched_count: int
    watched_by_viewer: bool


class PickRepository(BaseRepository[Pick]):
    """CRUD helpers for the pick ledger."""

    async def create(
        self,
        *,
        group_id: uuid.UUID,
        sender_id: uuid.UUID,
        media_type: MediaType,
        media_id: str,
        title: str,
        poster_path: str | None = None,
        release_year: int | None = None,
        note: str | None = None,
    ) -> Pick:
        pick = Pick(
            group_id=group_id,
            sender_id=sender_id,
            media_type=media_type,
            media_id=media_id,
            title=title,
            poster_path=poster_path,
            release_year=release_year,
            note=note,
        )
        return await self.add_unique(pick, entity="pick")

    async def get_in_group(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> Pick | None:
        stmt = select(Pick).where(Pick.id == pick_id, Pick.group_id == group_id)
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_media(
        self,
        group_id: uuid.UUID,
        media_type: MediaType,
        media_id: str,
    ) -> Pick | None:
        stmt = select(Pick).where(
            Pick.group_id == group_id,
            Pick.media_type == media_type,
            Pick.media_id == media_id,
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def list_open_with_stats(
        self,
        group_id: uuid.UUID,
        viewer_id: uuid.UUID,
    ) -> list[PickStatsRow]:
        """Picks that have not been latched as completed, with aggregates."""
        upvotes = (
            select(func.count(PickVote.id))
            .where(PickVote.pick_id == Pick.id, PickVote.value == 1)
            .correlate(Pick)
            .scalar_subquery()
        )
        downvotes = (
            select(func.count(PickVote.id))
            .where(PickVote.pick_id == Pick.id, PickVote.value == -1)
            .correlate(Pick)
            .scalar_subquery()
        )
        viewer_vote = (
            select(PickVote.value)
            .where(PickVote.pick_id == Pick.id, PickVote.user_id == viewer_id)
            .correlate(Pick)
            .scalar_subquery()
        )
        watched = (
            select(func.count(PickWatch.id))
            .where(PickWatch.pick_id == Pick.id)
            .correlate(Pick)
            .scalar_subquery()
        )
        watched_by_viewer = (
            exists()
            .where(PickWatch.pick_id == Pick.id, PickWatch.user_id == viewer_id)
            .correlate(Pick)
        )
        stmt: Select[tuple[Pick, int, int, int | None, int, bool]] = (
            select(Pick, upvotes, downvotes, viewer_vote, watched, watched_by_viewer)
            .options(selectinload(Pick.sender))
            .where(Pick.group_id == group_id, Pick.completed_at.is_(None))
            .order_by(Pick.created_at.desc(), Pick.id)
        )
        result = await self.execute(stmt)
        return [
            PickStatsRow(
                pick=pick,
                upvotes=int(up or 0),
                downvotes=int(down or 0),
                viewer_vote=int(vote) if vote is not None else None,
                watched_count=int(watched_count or 0),
                watched_by_viewer=bool(seen),
            )
            for pick, up, down, vote, watched_count, seen in result.all()
        ]

    async def latch_completed(self, pick: Pick, *, completed_at: datetime | None = None) -> None:
        if pick.completed_at is not None:
            return
        pick.completed_at = completed_at or utcnow()
        await self.flush()

    async def remove(self, pick: Pick) -> None:
        await self.execute(delete(PickVote).where(PickVote.pick_id == pick.id))
        await self.execute(delete(PickWatch).where(PickWatch.pick_id == pick.id))
        await self.session.delete(pick)
        await self.flush()


class PickVoteRepository(BaseRepository[PickVote]):
    """Votes are keyed by (pick, user); a user holds at most one vote per pick."""

    async def get(self, pick_id: uuid.UUID, user_id: uuid.UUID) -> PickVote | None:
        stmt = select(PickVote).where(PickVote.pick_id == pick_id, PickVote.user_id == user_id)
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, *, pick_id: uuid.UUID, user_id: uuid.UUID, value: int) -> PickVote:
        vote = PickVote(pick_id=pick_id, user_id=user_id, value=value)
        return await self.add_unique(vote, entity="vote")

    async def set_value(self, vote: PickVote, value: int) -> PickVote:
        vote.value = value
        await self.flush()
        return vote

    async def clear(self, pick_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        stmt = delete(PickVote).where(PickVote.pick_id == pick_id, PickVote.user_id == user_id)
        result = await self.execute(stmt)
        return bool(getattr(result, "rowcount", 0))


class PickWatchRepository(BaseRepository[PickWatch]):
    """Watch marks; the (pick, user) pair is unique."""

    async def create(self, *, pick_id: uuid.UUID, user_id: uuid.UUID) -> PickWatch:
        mark = PickWatch(pick_id=pick_id, user_id=user_id)
        return await self.add_unique(mark, entity="watch")

    async def exists_for(self, pick_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        stmt = select(
            exists().where(PickWatch.pick_id == pick_id, PickWatch.user_id == user_id)
        )
        result = await self.execute(stmt)
        return bool(result.scalar_one())

    async def count(self, pick_id: uuid.UUID) -> int:
        stmt = select(func.count(PickWatch.id)).where(PickWatch.pick_id == pick_id)
        result = await self.execute(stmt)
        return int(result.scalar_one())


__all__ = ["PickRepository", "PickStatsRow", "PickVoteRepository", "PickWatchRepository"]
