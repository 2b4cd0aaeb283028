"""Database and domain models shared across the backend."""

from groupwatch.models.base import Base
from groupwatch.models.chat import Message, MessageReaction
from groupwatch.models.group import Group, GroupInvite, GroupInviteStatus, GroupMember, GroupRole
from groupwatch.models.pick import MediaType, Pick, PickVote, PickWatch
from groupwatch.models.user import User

__all__ = [
    "Base",
    "Group",
    "GroupInvite",
    "GroupInviteStatus",
    "GroupMember",
    "GroupRole",
    "MediaType",
    "Message",
    "MessageReaction",
    "Pick",
    "PickVote",
    "PickWatch",
    "User",
]
