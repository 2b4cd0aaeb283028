"""Pydantic schemas for group pick endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from groupwatch.models.pick import (
    MEDIA_ID_MAX_LENGTH,
    PICK_NOTE_MAX_LENGTH,
    PICK_POSTER_MAX_LENGTH,
    PICK_TITLE_MAX_LENGTH,
    MediaType,
)


class PickCreateRequest(BaseModel):
    """Body for POST /api/groups/{id}/picks. Catalog fields are stored as given."""

    media_type: MediaType
    media_id: str = Field(min_length=1, max_length=MEDIA_ID_MAX_LENGTH)
    title: str = Field(min_length=1, max_length=PICK_TITLE_MAX_LENGTH)
    poster_path: str | None = Field(default=None, max_length=PICK_POSTER_MAX_LENGTH)
    release_year: int | None = Field(default=None, ge=1800, le=3000)
    note: str | None = Field(default=None, max_length=PICK_NOTE_MAX_LENGTH)


class PickVoteRequest(BaseModel):
    value: Literal[-1, 1]


class PickResponse(BaseModel):
    id: UUID
    group_id: UUID
    sender_id: UUID
    sender_name: str
    media_type: MediaType
    media_id: str
    title: str
    poster_path: str | None
    release_year: int | None
    note: str | None
    score: int
    upvotes: int
    downvotes: int
    viewer_vote: int | None
    watched_count: int
    required_watched_count: int
    watched_by_viewer: bool
    created_at: datetime


class PickListResponse(BaseModel):
    data: list[PickResponse]


class PickCreatedResponse(BaseModel):
    id: UUID
    group_id: UUID
    media_type: MediaType
    media_id: str
    title: str
    created_at: datetime


class PickVoteResponse(BaseModel):
    pick_id: UUID
    value: int | None


class PickWatchResponse(BaseModel):
    pick_id: UUID
    watched_count: int
    required_watched_count: int
    visible: bool


__all__ = [
    "PickCreateRequest",
    "PickCreatedResponse",
    "PickListResponse",
    "PickResponse",
    "PickVoteRequest",
    "PickVoteResponse",
    "PickWatchResponse",
]
