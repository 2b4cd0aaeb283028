"""Chat ledger: messages, one-level reply threads, shared titles and reactions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Final

from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.errors import ErrorCode, NotFoundError, ValidationError
from groupwatch.models.chat import MESSAGE_BODY_MAX_LENGTH, Message
from groupwatch.models.pick import (
    MEDIA_ID_MAX_LENGTH,
    PICK_POSTER_MAX_LENGTH,
    PICK_TITLE_MAX_LENGTH,
    MediaType,
)
from groupwatch.models.user import User
from groupwatch.repositories.base import DuplicateRecordError
from groupwatch.repositories.chat import MessageRepository, ReactionRepository
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository
from groupwatch.services.access import GroupAccess
from groupwatch.services.group import as_mention_target
from groupwatch.services.mentions import MentionSegments, split_mention_segments

logger = logging.getLogger(__name__)

REACTION_OPTIONS: Final[tuple[str, ...]] = ("❤️", "😂", "😮", "😢", "😠", "😭")
REPLY_PREVIEW_MAX_LENGTH = 140
DEFAULT_PAGE_SIZE = 200


@dataclass(frozen=True, slots=True)
class SharedMedia:
    """Catalog snapshot attached to a message; stored verbatim, never re-fetched."""

    media_type: MediaType
    media_id: str
    title: str
    poster_path: str | None = None
    release_year: int | None = None


@dataclass(slots=True)
class ReplyPreview:
    message_id: uuid.UUID
    sender_name: str
    text: str


@dataclass(slots=True)
class ReactionSummary:
    value: str
    count: int
    reacted_by_viewer: bool


@dataclass(slots=True)
class MessageView:
    message: Message
    sender_name: str
    shared_media: SharedMedia | None
    reply_preview: ReplyPreview | None
    reactions: list[ReactionSummary] = field(default_factory=list)
    segments: MentionSegments | None = None


class ChatService:
    """Coordinate sending, listing and reacting to group chat messages."""

    def __init__(
        self,
        group_repo: GroupRepository,
        member_repo: GroupMemberRepository,
        message_repo: MessageRepository,
        reaction_repo: ReactionRepository,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.member_repo = member_repo
        self.message_repo = message_repo
        self.reaction_repo = reaction_repo
        self.page_size = page_size
        self.access = GroupAccess(group_repo, member_repo)

    @property
    def session(self) -> AsyncSession:
        """Expose shared session for transaction control."""
        return self.member_repo.session

    async def send_message(
        self,
        sender: User,
        group_id: uuid.UUID,
        body: str | None,
        *,
        shared_media: SharedMedia | None = None,
        reply_to_id: uuid.UUID | None = None,
    ) -> Message:
        """
        Store a message exactly as typed. Mentions stay plain text.

        A reply to a reply is attached to the original message so threads stay
        one level deep. The sender's seen marker moves to the new message.
        """
        await self.access.ensure_member(group_id, sender)

        text = body if body is not None and body.strip() else None
        if text is None and shared_media is None:
            raise ValidationError("Message must have text or a shared title.")
        if text is not None and len(text) > MESSAGE_BODY_MAX_LENGTH:
            raise ValidationError(
                f"Message must be at most {MESSAGE_BODY_MAX_LENGTH} characters.",
                details={"length": len(text)},
            )
        media = _validate_shared_media(shared_media) if shared_media is not None else None

        reply_target_id: uuid.UUID | None = None
        if reply_to_id is not None:
            target = await self.message_repo.get_in_group(group_id, reply_to_id)
            if target is None:
                raise NotFoundError(
                    code=ErrorCode.MESSAGE_NOT_FOUND,
                    message="The message you are replying to was not found.",
                )
            reply_target_id = target.reply_to_id or target.id

        message = await self.message_repo.create(
            group_id=group_id,
            sender_id=sender.id,
            body=text,
            reply_to_id=reply_target_id,
            shared_media_type=media.media_type if media else None,
            shared_media_id=media.media_id if media else None,
            shared_title=media.title if media else None,
            shared_poster_path=media.poster_path if media else None,
            shared_release_year=media.release_year if media else None,
        )
        await self.member_repo.mark_seen(group_id, sender.id, seen_at=message.created_at)
        logger.info(
            "Message sent",
            extra={"group_id": str(group_id), "message_id": str(message.id)},
        )
        return message

    async def list_messages(
        self,
        viewer: User,
        group_id: uuid.UUID,
        *,
        limit: int | None = None,
    ) -> list[MessageView]:
        """Most recent messages in chronological order; clears the viewer's unseen badge."""
        await self.access.ensure_member(group_id, viewer)

        messages = await self.message_repo.list_recent(group_id, limit=limit or self.page_size)
        by_id = {message.id: message for message in messages}
        missing = [
            message.reply_to_id
            for message in messages
            if message.reply_to_id is not None and message.reply_to_id not in by_id
        ]
        reply_targets = {**by_id, **await self.message_repo.get_many(missing)}
        reactions = await self.reaction_repo.summarize(list(by_id), viewer.id)

        memberships = await self.member_repo.list_with_users(group_id)
        roster = [as_mention_target(membership.user) for membership in memberships]

        views = [
            MessageView(
                message=message,
                sender_name=message.sender.display_name,
                shared_media=shared_media_of(message),
                reply_preview=_reply_preview(message, reply_targets),
                reactions=_ordered_reactions(reactions.get(message.id, {})),
                segments=split_mention_segments(message.body or "", roster),
            )
            for message in messages
        ]
        await self.member_repo.mark_seen(group_id, viewer.id)
        return views

    async def toggle_reaction(
        self,
        caller: User,
        group_id: uuid.UUID,
        message_id: uuid.UUID,
        value: str,
    ) -> bool:
        """Flip the caller's reaction; returns whether it is now present."""
        await self.access.ensure_member(group_id, caller)
        message = await self.message_repo.get_in_group(group_id, message_id)
        if message is None:
            raise NotFoundError(code=ErrorCode.MESSAGE_NOT_FOUND, message="Message not found.")
        if value not in REACTION_OPTIONS:
            raise ValidationError(
                "Unsupported reaction.",
                details={"allowed": list(REACTION_OPTIONS)},
            )

        existing = await self.reaction_repo.get(message.id, caller.id, value)
        if existing is not None:
            await self.reaction_repo.remove(existing)
            return False
        try:
            await self.reaction_repo.create(message_id=message.id, user_id=caller.id, value=value)
        except DuplicateRecordError:
            logger.debug("Reaction already present", extra={"message_id": str(message.id)})
        return True

    async def unseen_count(self, caller: User, group_id: uuid.UUID) -> int:
        await self.access.ensure_member(group_id, caller)
        counts = await self.message_repo.count_unseen(caller.id, [group_id])
        return counts.get(group_id, 0)


def shared_media_of(message: Message) -> SharedMedia | None:
    if message.shared_media_type is None:
        return None
    return SharedMedia(
        media_type=message.shared_media_type,
        media_id=message.shared_media_id or "",
        title=message.shared_title or "",
        poster_path=message.shared_poster_path,
        release_year=message.shared_release_year,
    )


def _validate_shared_media(media: SharedMedia) -> SharedMedia:
    try:
        media_type = MediaType(media.media_type)
    except ValueError as exc:
        raise ValidationError("Media type must be 'movie' or 'show'.") from exc
    media_id = (media.media_id or "").strip()
    title = (media.title or "").strip()
    if not media_id or not title:
        raise ValidationError("A shared title needs a media id and a title.")
    if len(media_id) > MEDIA_ID_MAX_LENGTH or len(title) > PICK_TITLE_MAX_LENGTH:
        raise ValidationError("Shared title fields are too long.")
    poster = (media.poster_path or "").strip() or None
    if poster is not None and len(poster) > PICK_POSTER_MAX_LENGTH:
        raise ValidationError("Shared poster path is too long.")
    return SharedMedia(
        media_type=media_type,
        media_id=media_id,
        title=title,
        poster_path=poster,
        release_year=media.release_year,
    )


def _reply_preview(message: Message, targets: dict[uuid.UUID, Message]) -> ReplyPreview | None:
    if message.reply_to_id is None:
        return None
    target = targets.get(message.reply_to_id)
    if target is None:
        return None
    if target.body and target.body.strip():
        text = target.body.strip()
        if len(text) > REPLY_PREVIEW_MAX_LENGTH:
            text = text[: REPLY_PREVIEW_MAX_LENGTH - 1].rstrip() + "…"
    elif target.shared_title:
        text = target.shared_title
    else:
        text = "Attachment"
    return ReplyPreview(message_id=target.id, sender_name=target.sender.display_name, text=text)


def _ordered_reactions(summary: dict[str, tuple[int, bool]]) -> list[ReactionSummary]:
    return [
        ReactionSummary(value=value, count=summary[value][0], reacted_by_viewer=summary[value][1])
        for value in REACTION_OPTIONS
        if value in summary and summary[value][0] > 0
    ]


__all__ = [
    "ChatService",
    "MessageView",
    "REACTION_OPTIONS",
    "ReactionSummary",
    "ReplyPreview",
    "SharedMedia",
    "shared_media_of",
]
