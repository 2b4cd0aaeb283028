"""Shared helpers for tests."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.models.user import User
from groupwatch.repositories.chat import MessageRepository, ReactionRepository
from groupwatch.repositories.group import (
    GroupInviteRepository,
    GroupMemberRepository,
    GroupRepository,
)
from groupwatch.repositories.pick import (
    PickRepository,
    PickVoteRepository,
    PickWatchRepository,
)
from groupwatch.repositories.user import UserRepository
from groupwatch.services.chat import ChatService
from groupwatch.services.group import GroupService, InviteDecision
from groupwatch.services.picks import PickService


def make_user(name: str, username: str | None = None) -> User:
    return User(id=uuid.uuid4(), name=name, username=username)


async def add_users(session: AsyncSession, *users: User) -> None:
    session.add_all(users)
    await session.flush()


def group_service(session: AsyncSession) -> GroupService:
    return GroupService(
        GroupRepository(session),
        GroupMemberRepository(session),
        GroupInviteRepository(session),
        UserRepository(session),
        MessageRepository(session),
    )


def pick_service(session: AsyncSession) -> PickService:
    return PickService(
        GroupRepository(session),
        GroupMemberRepository(session),
        PickRepository(session),
        PickVoteRepository(session),
        PickWatchRepository(session),
    )


def chat_service(session: AsyncSession, *, page_size: int = 200) -> ChatService:
    return ChatService(
        GroupRepository(session),
        GroupMemberRepository(session),
        MessageRepository(session),
        ReactionRepository(session),
        page_size=page_size,
    )


async def join(session: AsyncSession, owner: User, member: User, group_id: uuid.UUID) -> None:
    """Run the invite handshake so ``member`` joins the group."""
    service = group_service(session)
    invite = await service.invite_member(owner, group_id, member.id)
    await service.respond_to_invite(member, invite.id, InviteDecision.ACCEPT)
