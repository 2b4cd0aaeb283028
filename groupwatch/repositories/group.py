"""Repositories encapsulating persistence logic for groups, members and invites."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, case, delete, func, select, update
from sqlalchemy.orm import selectinload

from groupwatch.models.base import utcnow
from groupwatch.models.group import (
    Group,
    GroupInvite,
    GroupInviteStatus,
    GroupMember,
    GroupRole,
)
from groupwatch.models.user import User
from groupwatch.repositories.base import BaseRepository

_OWNER_FIRST = case((GroupMember.role == GroupRole.OWNER, 0), else_=1)


class GroupRepository(BaseRepository[Group]):
    """CRUD helpers for watch groups."""

    async def create(
        self,
        *,
        owner_id: uuid.UUID,
        name: str,
        description: str | None = None,
    ) -> Group:
        """Insert the group and the owner's membership in one flush."""
        group = Group(id=uuid.uuid4(), owner_id=owner_id, name=name, description=description)
        self.session.add(group)
        self.session.add(
            GroupMember(group_id=group.id, user_id=owner_id, role=GroupRole.OWNER)
        )
        await self.flush()
        return group

    async def get(self, group_id: uuid.UUID) -> Group | None:
        stmt = select(Group).where(Group.id == group_id, Group.deleted.is_(False))
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_member(self, user_id: uuid.UUID) -> list[tuple[Group, GroupMember]]:
        """Groups the user belongs to: owned first, then most recently updated."""
        stmt: Select[tuple[Group, GroupMember]] = (
            select(Group, GroupMember)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(GroupMember.user_id == user_id, Group.deleted.is_(False))
            .order_by(_OWNER_FIRST, Group.updated_at.desc(), Group.id)
        )
        result = await self.execute(stmt)
        return [(group, membership) for group, membership in result.all()]

    async def update_details(
        self,
        group: Group,
        *,
        name: str,
        description: str | None,
    ) -> Group:
        group.name = name
        group.description = description
        await self.flush()
        return group

    async def soft_delete(self, group: Group) -> None:
        group.deleted = True
        group.deleted_at = utcnow()
        await self.flush()


class GroupMemberRepository(BaseRepository[GroupMember]):
    """Helper methods for managing group memberships and seen markers."""

    async def get(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> GroupMember | None:
        stmt = select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def add_member(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        role: GroupRole = GroupRole.MEMBER,
    ) -> GroupMember:
        membership = GroupMember(group_id=group_id, user_id=user_id, role=role)
        return await self.add_unique(membership, entity="membership")

    async def remove(self, membership: GroupMember) -> None:
        await self.session.delete(membership)
        await self.flush()

    async def list_with_users(self, group_id: uuid.UUID) -> list[GroupMember]:
        """Members with their user rows: owner first, then by name."""
        stmt: Select[tuple[GroupMember]] = (
            select(GroupMember)
            .join(User, User.id == GroupMember.user_id)
            .options(selectinload(GroupMember.user))
            .where(GroupMember.group_id == group_id)
            .order_by(_OWNER_FIRST, func.lower(User.name), GroupMember.joined_at)
        )
        result = await self.execute(stmt)
        return list(result.scalars().unique())

    async def count(self, group_id: uuid.UUID) -> int:
        stmt = select(func.count(GroupMember.id)).where(GroupMember.group_id == group_id)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def count_for_groups(self, group_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, int]:
        if not group_ids:
            return {}
        stmt = (
            select(GroupMember.group_id, func.count(GroupMember.id))
            .where(GroupMember.group_id.in_(group_ids))
            .group_by(GroupMember.group_id)
        )
        result = await self.execute(stmt)
        return {group_id: int(count) for group_id, count in result.all()}

    async def mark_seen(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        seen_at: datetime | None = None,
    ) -> None:
        """Move the member's seen marker forward; never moves it back."""
        timestamp = seen_at or utcnow()
        stmt = (
            update(GroupMember)
            .where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
                GroupMember.last_seen_at < timestamp,
            )
            .values(last_seen_at=timestamp)
            .execution_options(synchronize_session=False)
        )
        await self.execute(stmt)


class GroupInviteRepository(BaseRepository[GroupInvite]):
    """Persistence helpers for invites sent to prospective members."""

    async def create(
        self,
        *,
        group_id: uuid.UUID,
        inviter_id: uuid.UUID,
        invitee_id: uuid.UUID,
    ) -> GroupInvite:
        invite = GroupInvite(
            group_id=group_id,
            inviter_id=inviter_id,
            invitee_id=invitee_id,
            status=GroupInviteStatus.PENDING,
        )
        return await self.add_unique(invite, entity="invite")

    async def get(self, invite_id: uuid.UUID) -> GroupInvite | None:
        stmt = (
            select(GroupInvite)
            .options(selectinload(GroupInvite.group))
            .where(GroupInvite.id == invite_id)
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending(
        self,
        group_id: uuid.UUID,
        invitee_id: uuid.UUID,
    ) -> GroupInvite | None:
        stmt = select(GroupInvite).where(
            GroupInvite.group_id == group_id,
            GroupInvite.invitee_id == invitee_id,
            GroupInvite.status == GroupInviteStatus.PENDING,
        )
        result = await self.execute(stmt)
        return result.scalar_one_or_none()

    async def list_pending_for_group(self, group_id: uuid.UUID) -> list[GroupInvite]:
        stmt = (
            select(GroupInvite)
            .options(selectinload(GroupInvite.invitee))
            .where(
                GroupInvite.group_id == group_id,
                GroupInvite.status == GroupInviteStatus.PENDING,
            )
            .order_by(GroupInvite.created_at.desc())
        )
        result = await self.execute(stmt)
        return list(result.scalars().unique())

    async def list_incoming(self, invitee_id: uuid.UUID) -> list[GroupInvite]:
        stmt = (
            select(GroupInvite)
            .join(Group, Group.id == GroupInvite.group_id)
            .options(
                selectinload(GroupInvite.group),
                selectinload(GroupInvite.inviter),
            )
            .where(
                GroupInvite.invitee_id == invitee_id,
                GroupInvite.status == GroupInviteStatus.PENDING,
                Group.deleted.is_(False),
            )
            .order_by(GroupInvite.created_at.desc())
        )
        result = await self.execute(stmt)
        return list(result.scalars().unique())

    async def mark_responded(self, invite: GroupInvite, status: GroupInviteStatus) -> GroupInvite:
        invite.status = status
        invite.responded_at = utcnow()
        await self.flush()
        return invite

    async def delete_pending_for_group(self, group_id: uuid.UUID) -> None:
        stmt = delete(GroupInvite).where(
            GroupInvite.group_id == group_id,
            GroupInvite.status == GroupInviteStatus.PENDING,
        )
        await self.execute(stmt)


__all__ = [
    "GroupInviteRepository",
    "GroupMemberRepository",
    "GroupRepository",
]
