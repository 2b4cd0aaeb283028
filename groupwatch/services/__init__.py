"""Business logic services orchestrating domain operations."""

from groupwatch.services.chat import ChatService
from groupwatch.services.group import GroupService
from groupwatch.services.picks import PickService

__all__ = ["ChatService", "GroupService", "PickService"]
