"""Pydantic schemas for group endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from groupwatch.models.group import GroupInviteStatus, GroupRole
from groupwatch.services.group import InviteDecision

# Upper bounds on raw input; trimmed lengths are enforced by GroupService.
RAW_NAME_LIMIT = 200
RAW_DESCRIPTION_LIMIT = 1000


class GroupCreateRequest(BaseModel):
    """Request payload for POST /api/groups."""

    name: str = Field(min_length=1, max_length=RAW_NAME_LIMIT)
    description: str | None = Field(default=None, max_length=RAW_DESCRIPTION_LIMIT)


class GroupUpdateRequest(BaseModel):
    """Patch body for renaming a group."""

    name: str = Field(min_length=1, max_length=RAW_NAME_LIMIT)
    description: str | None = Field(default=None, max_length=RAW_DESCRIPTION_LIMIT)


class GroupInviteRequest(BaseModel):
    """Body for POST /api/groups/{id}/invites."""

    user_id: UUID


class GroupInviteRespondRequest(BaseModel):
    decision: InviteDecision


class GroupResponse(BaseModel):
    """Serialized group with the caller's role."""

    id: UUID
    owner_id: UUID
    name: str
    description: str | None
    role: GroupRole
    members_count: int
    unseen_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupListResponse(BaseModel):
    """Envelope for GET /api/groups."""

    data: list[GroupResponse]


class GroupMemberResponse(BaseModel):
    """List entry representing a group participant."""

    user_id: UUID
    name: str
    username: str | None
    handle: str
    avatar_url: str | None
    role: GroupRole
    joined_at: datetime


class GroupMemberListResponse(BaseModel):
    data: list[GroupMemberResponse]


class GroupInviteResponse(BaseModel):
    """Invite metadata shown to owners and invitees."""

    invite_id: UUID
    group_id: UUID
    group_name: str | None = None
    inviter_id: UUID
    inviter_name: str | None = None
    invitee_id: UUID
    invitee_name: str | None = None
    status: GroupInviteStatus
    created_at: datetime


class GroupInviteListResponse(BaseModel):
    data: list[GroupInviteResponse]


class GroupInviteRespondResponse(BaseModel):
    """Outcome of answering an invite; ``group_id`` is the group joined on accept."""

    invite_id: UUID
    status: GroupInviteStatus
    group_id: UUID | None


__all__ = [
    "GroupCreateRequest",
    "GroupInviteListResponse",
    "GroupInviteRequest",
    "GroupInviteRespondRequest",
    "GroupInviteRespondResponse",
    "GroupInviteResponse",
    "GroupListResponse",
    "GroupMemberListResponse",
    "GroupMemberResponse",
    "GroupResponse",
    "GroupUpdateRequest",
]
