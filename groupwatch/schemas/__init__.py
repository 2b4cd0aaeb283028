"""Public exports for Pydantic schemas."""

from __future__ import annotations

from .chat import (
    MessageCreateRequest,
    MessageCreatedResponse,
    MessageListResponse,
    MessageResponse,
    ReactionToggleRequest,
    ReactionToggleResponse,
    SharedMediaPayload,
    UnseenCountResponse,
)
from .group import (
    GroupCreateRequest,
    GroupInviteListResponse,
    GroupInviteRequest,
    GroupInviteRespondRequest,
    GroupInviteRespondResponse,
    GroupInviteResponse,
    GroupListResponse,
    GroupMemberListResponse,
    GroupMemberResponse,
    GroupResponse,
    GroupUpdateRequest,
)
from .pick import (
    PickCreateRequest,
    PickCreatedResponse,
    PickListResponse,
    PickResponse,
    PickVoteRequest,
    PickVoteResponse,
    PickWatchResponse,
)

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
    "MessageCreateRequest",
    "MessageCreatedResponse",
    "MessageListResponse",
    "MessageResponse",
    "PickCreateRequest",
    "PickCreatedResponse",
    "PickListResponse",
    "PickResponse",
    "PickVoteRequest",
    "PickVoteResponse",
    "PickWatchResponse",
    "ReactionToggleRequest",
    "ReactionToggleResponse",
    "SharedMediaPayload",
    "UnseenCountResponse",
]
