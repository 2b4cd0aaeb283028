"""Pydantic schemas for group chat endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from groupwatch.models.chat import MESSAGE_BODY_MAX_LENGTH, REACTION_MAX_LENGTH
from groupwatch.models.pick import (
    MEDIA_ID_MAX_LENGTH,
    PICK_POSTER_MAX_LENGTH,
    PICK_TITLE_MAX_LENGTH,
    MediaType,
)


class SharedMediaPayload(BaseModel):
    """Catalog snapshot attached to a message."""

    media_type: MediaType
    media_id: str = Field(min_length=1, max_length=MEDIA_ID_MAX_LENGTH)
    title: str = Field(min_length=1, max_length=PICK_TITLE_MAX_LENGTH)
    poster_path: str | None = Field(default=None, max_length=PICK_POSTER_MAX_LENGTH)
    release_year: int | None = None


class MessageCreateRequest(BaseModel):
    """Body for POST /api/groups/{id}/messages."""

    body: str | None = Field(default=None, max_length=MESSAGE_BODY_MAX_LENGTH)
    shared_media: SharedMediaPayload | None = None
    reply_to_id: UUID | None = None


class ReactionToggleRequest(BaseModel):
    value: str = Field(min_length=1, max_length=REACTION_MAX_LENGTH)


class MentionSegmentResponse(BaseModel):
    text: str
    is_mention: bool


class ReplyPreviewResponse(BaseModel):
    message_id: UUID
    sender_name: str
    text: str


class ReactionSummaryResponse(BaseModel):
    value: str
    count: int
    reacted_by_viewer: bool


class MessageResponse(BaseModel):
    id: UUID
    group_id: UUID
    sender_id: UUID
    sender_name: str
    body: str | None
    segments: list[MentionSegmentResponse]
    shared_media: SharedMediaPayload | None
    reply_to_id: UUID | None
    reply_preview: ReplyPreviewResponse | None
    reactions: list[ReactionSummaryResponse]
    created_at: datetime


class MessageListResponse(BaseModel):
    data: list[MessageResponse]


class MessageCreatedResponse(BaseModel):
    id: UUID
    group_id: UUID
    reply_to_id: UUID | None
    created_at: datetime


class ReactionToggleResponse(BaseModel):
    message_id: UUID
    value: str
    active: bool


class UnseenCountResponse(BaseModel):
    group_id: UUID
    unseen_count: int


__all__ = [
    "MentionSegmentResponse",
    "MessageCreateRequest",
    "MessageCreatedResponse",
    "MessageListResponse",
    "MessageResponse",
    "ReactionSummaryResponse",
    "ReactionToggleRequest",
    "ReactionToggleResponse",
    "ReplyPreviewResponse",
    "SharedMediaPayload",
    "UnseenCountResponse",
]
