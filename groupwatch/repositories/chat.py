"""Repositories for chat messages and reactions."""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import Select, and_, case, func, select
from sqlalchemy.orm import selectinload

from groupwatch.models.chat import Message, MessageReaction
from groupwatch.models.group import GroupMember
from groupwatch.models.pick import MediaType
from groupwatch.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Persistence helpers for the chat ledger."""

    async def create(
        self,
        *,
        group_id: uuid.UUID,
        sender_id: uuid.UUID,
        body: str | None,
        reply_to_id: uuid.UUID | None = None,
        shared_media_type: MediaType | None = None,
        shared_media_id: str | None = None,
        shared_title: str | None = None,
        shared_poster_path: str | None = None,
        shared_release_year: int | None = None,
    ) -> Message:
        message = Message(
            group_id=group_id,
            sender_id=sender_id,
            body=body,
            reply_to_id=reply_to_id,
            shared_media_type=shared_media_type,
            shared_media_id=shared_media_id,
            shared_title=shared_title,
            shared_poster_path=shared_poster_path,
            shared_release_year=shared_release_year,
        )
        return await self.add(message)

    async def get_in_group(self, group_id: uuid.UUID, message_id: uuid.UUID) -> Message | None:
        stmt = select(Message).where(Message.id == message_id, Message.group_id == group_id)
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(self, group_id: uuid.UUID, *, limit: int) -> list[Message]:
        """The newest ``limit`` messages, returned oldest first."""
        stmt: Select[tuple[Message]] = (
            select(Message)
            .options(selectinload(Message.sender))
            .where(Message.group_id == group_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        result = await self.execute(stmt)
        messages = list(result.scalars().unique())
        messages.reverse()
        return messages

    async def get_many(self, message_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, Message]:
        if not message_ids:
            return {}
        stmt = (
            select(Message)
            .options(selectinload(Message.sender))
            .where(Message.id.in_(message_ids))
        )
        result = await self.execute(stmt)
        return {message.id: message for message in result.scalars().unique()}

    async def count_unseen(
        self,
        user_id: uuid.UUID,
        group_ids: Sequence[uuid.UUID],
    ) -> dict[uuid.UUID, int]:
        """Messages from other members newer than the user's seen marker, per group."""
        if not group_ids:
            return {}
        stmt = (
            select(Message.group_id, func.count(Message.id))
            .join(
                GroupMember,
                and_(
                    GroupMember.group_id == Message.group_id,
                    GroupMember.user_id == user_id,
                ),
            )
            .where(
                Message.group_id.in_(group_ids),
                Message.sender_id != user_id,
                Message.created_at > GroupMember.last_seen_at,
            )
            .group_by(Message.group_id)
        )
        result = await self.execute(stmt)
        return {group_id: int(count) for group_id, count in result.all()}


class ReactionRepository(BaseRepository[MessageReaction]):
    """Emoji reactions keyed by (message, user, value)."""

    async def get(
        self,
        message_id: uuid.UUID,
        user_id: uuid.UUID,
        value: str,
    ) -> MessageReaction | None:
        stmt = select(MessageReaction).where(
            MessageReaction.message_id == message_id,
            MessageReaction.user_id == user_id,
            MessageReaction.value == value,
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, *, message_id: uuid.UUID, user_id: uuid.UUID, value: str) -> MessageReaction:
        reaction = MessageReaction(message_id=message_id, user_id=user_id, value=value)
        return await self.add_unique(reaction, entity="reaction")

    async def remove(self, reaction: MessageReaction) -> None:
        await self.session.delete(reaction)
        await self.flush()

    async def summarize(
        self,
        message_ids: Sequence[uuid.UUID],
        viewer_id: uuid.UUID,
    ) -> dict[uuid.UUID, dict[str, tuple[int, bool]]]:
        """Per message, map each reaction value to (count, reacted_by_viewer)."""
        if not message_ids:
            return {}
        reacted = func.max(case((MessageReaction.user_id == viewer_id, 1), else_=0))
        stmt = (
            select(
                MessageReaction.message_id,
                MessageReaction.value,
                func.count(MessageReaction.id),
                reacted,
            )
            .where(MessageReaction.message_id.in_(message_ids))
            .group_by(MessageReaction.message_id, MessageReaction.value)
        )
        result = await self.execute(stmt)
        summary: dict[uuid.UUID, dict[str, tuple[int, bool]]] = defaultdict(dict)
        for message_id, value, count, viewer_flag in result.all():
            summary[message_id][value] = (int(count), bool(viewer_flag))
        return dict(summary)


__all__ = ["MessageRepository", "ReactionRepository"]
