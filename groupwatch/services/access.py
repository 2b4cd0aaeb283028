"""Membership checks shared by every group-scoped service."""

from __future__ import annotations

import uuid

from groupwatch.core.errors import ErrorCode, NotFoundError, PermissionDeniedError
from groupwatch.models.group import Group, GroupMember, GroupRole
from groupwatch.models.user import User
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository


class GroupAccess:
    """Resolve a group for a caller, enforcing membership before anything else."""

    def __init__(self, group_repo: GroupRepository, member_repo: GroupMemberRepository) -> None:
        self.group_repo = group_repo
        self.member_repo = member_repo

    async def ensure_member(self, group_id: uuid.UUID, user: User) -> tuple[Group, GroupMember]:
        group = await self.group_repo.get(group_id)
        if group is None:
            raise NotFoundError(code=ErrorCode.GROUP_NOT_FOUND, message="Group not found.")
        membership = await self.member_repo.get(group.id, user.id)
        if membership is None:
            raise PermissionDeniedError(
                code=ErrorCode.NOT_A_MEMBER,
                message="You are not a member of this group.",
            )
        return group, membership

    async def ensure_owner(self, group_id: uuid.UUID, user: User) -> tuple[Group, GroupMember]:
        group, membership = await self.ensure_member(group_id, user)
        if membership.role != GroupRole.OWNER:
            raise PermissionDeniedError(
                code=ErrorCode.FORBIDDEN,
                message="Only the group owner can do this.",
            )
        return group, membership


__all__ = ["GroupAccess"]
