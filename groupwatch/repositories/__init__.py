"""Data access layer abstractions and implementations."""

from groupwatch.repositories.base import BaseRepository, DuplicateRecordError
from groupwatch.repositories.chat import MessageRepository, ReactionRepository
from groupwatch.repositories.group import (
    GroupInviteRepository,
    GroupMemberRepository,
    GroupRepository,
)
from groupwatch.repositories.pick import (
    PickRepository,
    PickStatsRow,
    PickVoteRepository,
    PickWatchRepository,
)
from groupwatch.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "DuplicateRecordError",
    "GroupInviteRepository",
    "GroupMemberRepository",
    "GroupRepository",
    "MessageRepository",
    "PickRepository",
    "PickStatsRow",
    "PickVoteRepository",
    "PickWatchRepository",
    "ReactionRepository",
    "UserRepository",
]
