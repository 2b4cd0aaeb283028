"""Domain service orchestrating groups, memberships and invites."""

from __future__ import annotations

import enum
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from groupwatch.models.group import (
    GROUP_DESCRIPTION_MAX_LENGTH,
    GROUP_NAME_MAX_LENGTH,
    GROUP_NAME_MIN_LENGTH,
    Group,
    GroupInvite,
    GroupInviteStatus,
    GroupRole,
)
from groupwatch.models.user import User
from groupwatch.repositories.base import DuplicateRecordError
from groupwatch.repositories.chat import MessageRepository
from groupwatch.repositories.group import (
    GroupInviteRepository,
    GroupMemberRepository,
    GroupRepository,
)
from groupwatch.repositories.user import UserRepository
from groupwatch.services.access import GroupAccess
from groupwatch.services.mentions import MentionTarget, mention_handle

logger = logging.getLogger(__name__)


class InviteDecision(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass(slots=True)
class GroupListItem:
    group: Group
    role: GroupRole
    member_count: int
    unseen_count: int


@dataclass(slots=True)
class MemberInfo:
    user: User
    role: GroupRole
    joined_at: datetime
    handle: str


@dataclass(slots=True)
class InviteOutcome:
    invite: GroupInvite
    group_id: uuid.UUID


class GroupService:
    """Coordinate group lifecycle, membership and the invite handshake."""

    def __init__(
        self,
        group_repo: GroupRepository,
        member_repo: GroupMemberRepository,
        invite_repo: GroupInviteRepository,
        user_repo: UserRepository,
        message_repo: MessageRepository,
    ) -> None:
        self.group_repo = group_repo
        self.member_repo = member_repo
        self.invite_repo = invite_repo
        self.user_repo = user_repo
        self.message_repo = message_repo
        self.access = GroupAccess(group_repo, member_repo)

    @property
    def session(self) -> AsyncSession:
        """Expose shared session for transaction control."""
        return self.member_repo.session

    async def create_group(self, owner: User, name: str, description: str | None = None) -> Group:
        """Create a group; the owner's membership is written in the same flush."""
        group = await self.group_repo.create(
            owner_id=owner.id,
            name=self._validate_name(name),
            description=self._validate_description(description),
        )
        logger.info("Group created", extra={"group_id": str(group.id)})
        return group

    async def rename_group(
        self,
        caller: User,
        group_id: uuid.UUID,
        name: str,
        description: str | None = None,
    ) -> Group:
        """Owner-only. ``description=None`` leaves the description untouched."""
        group, _ = await self.access.ensure_owner(group_id, caller)
        new_description = (
            group.description if description is None else self._validate_description(description)
        )
        return await self.group_repo.update_details(
            group,
            name=self._validate_name(name),
            description=new_description,
        )

    async def delete_group(self, caller: User, group_id: uuid.UUID) -> None:
        """Owner-only soft delete; pending invites to the group are dropped."""
        group, _ = await self.access.ensure_owner(group_id, caller)
        await self.invite_repo.delete_pending_for_group(group.id)
        await self.group_repo.soft_delete(group)
        logger.info("Group deleted", extra={"group_id": str(group.id)})

    async def leave_group(self, caller: User, group_id: uuid.UUID) -> None:
        group = await self.group_repo.get(group_id)
        if group is None:
            raise NotFoundError(code=ErrorCode.GROUP_NOT_FOUND, message="Group not found.")
        membership = await self.member_repo.get(group.id, caller.id)
        if membership is None:
            raise NotFoundError(
                code=ErrorCode.NOT_A_MEMBER,
                message="You are not a member of this group.",
            )
        if membership.role == GroupRole.OWNER:
            raise PermissionDeniedError(
                code=ErrorCode.OWNER_CANNOT_LEAVE,
                message="The owner cannot leave the group. Delete it instead.",
            )
        await self.member_repo.remove(membership)
        logger.info("Member left group", extra={"group_id": str(group.id)})

    async def remove_member(self, caller: User, group_id: uuid.UUID, member_id: uuid.UUID) -> None:
        group, _ = await self.access.ensure_owner(group_id, caller)
        if member_id == group.owner_id:
            raise PermissionDeniedError(
                code=ErrorCode.CANNOT_REMOVE_OWNER,
                message="The owner cannot be removed from the group.",
            )
        membership = await self.member_repo.get(group.id, member_id)
        if membership is None:
            raise NotFoundError(
                code=ErrorCode.NOT_A_MEMBER,
                message="This user is not a member of the group.",
            )
        await self.member_repo.remove(membership)

    async def invite_member(
        self,
        inviter: User,
        group_id: uuid.UUID,
        invitee_id: uuid.UUID,
    ) -> GroupInvite:
        group, _ = await self.access.ensure_owner(group_id, inviter)
        if invitee_id == inviter.id:
            raise ValidationError("You cannot invite yourself.")
        invitee = await self.user_repo.get_active(invitee_id)
        if invitee is None:
            raise NotFoundError(code=ErrorCode.USER_NOT_FOUND, message="User not found.")
        if await self.member_repo.get(group.id, invitee.id) is not None:
            raise ConflictError(
                code=ErrorCode.ALREADY_MEMBER,
                message="This user is already a member of the group.",
            )
        if await self.invite_repo.get_pending(group.id, invitee.id) is not None:
            raise self._pending_invite_conflict()

        try:
            invite = await self.invite_repo.create(
                group_id=group.id,
                inviter_id=inviter.id,
                invitee_id=invitee.id,
            )
        except DuplicateRecordError as exc:
            raise self._pending_invite_conflict() from exc

        logger.info(
            "Invite created",
            extra={"group_id": str(group.id), "invite_id": str(invite.id)},
        )
        return invite

    async def respond_to_invite(
        self,
        caller: User,
        invite_id: uuid.UUID,
        decision: InviteDecision,
    ) -> InviteOutcome:
        """Accept or reject an invite addressed to the caller."""
        invite = await self.invite_repo.get(invite_id)
        if invite is None or invite.group.deleted:
            raise NotFoundError(code=ErrorCode.INVITE_NOT_FOUND, message="Invite not found.")
        if invite.invitee_id != caller.id:
            raise PermissionDeniedError(
                code=ErrorCode.FORBIDDEN,
                message="This invite is not addressed to you.",
            )
        if invite.status != GroupInviteStatus.PENDING:
            raise PermissionDeniedError(
                code=ErrorCode.INVITE_NOT_PENDING,
                message="This invite has already been answered.",
            )

        if decision == InviteDecision.ACCEPT:
            if await self.member_repo.get(invite.group_id, caller.id) is None:
                try:
                    await self.member_repo.add_member(invite.group_id, caller.id)
                except DuplicateRecordError:
                    logger.info(
                        "Membership already created concurrently",
                        extra={"group_id": str(invite.group_id)},
                    )
            await self.invite_repo.mark_responded(invite, GroupInviteStatus.ACCEPTED)
        else:
            await self.invite_repo.mark_responded(invite, GroupInviteStatus.REJECTED)

        logger.info(
            "Invite answered",
            extra={"invite_id": str(invite.id), "decision": decision.value},
        )
        return InviteOutcome(invite=invite, group_id=invite.group_id)

    async def list_incoming_invites(self, caller: User) -> list[GroupInvite]:
        return await self.invite_repo.list_incoming(caller.id)

    async def list_pending_invites(self, caller: User, group_id: uuid.UUID) -> list[GroupInvite]:
        await self.access.ensure_owner(group_id, caller)
        return await self.invite_repo.list_pending_for_group(group_id)

    async def list_groups(self, caller: User) -> list[GroupListItem]:
        """Groups the caller belongs to with live member and unseen-message counts."""
        pairs = await self.group_repo.list_for_member(caller.id)
        group_ids = [group.id for group, _ in pairs]
        member_counts = await self.member_repo.count_for_groups(group_ids)
        unseen_counts = await self.message_repo.count_unseen(caller.id, group_ids)
        return [
            GroupListItem(
                group=group,
                role=membership.role,
                member_count=member_counts.get(group.id, 0),
                unseen_count=unseen_counts.get(group.id, 0),
            )
            for group, membership in pairs
        ]

    async def member_count(self, group_id: uuid.UUID) -> int:
        return await self.member_repo.count(group_id)

    async def list_members(self, caller: User, group_id: uuid.UUID) -> list[MemberInfo]:
        await self.access.ensure_member(group_id, caller)
        memberships = await self.member_repo.list_with_users(group_id)
        return [
            MemberInfo(
                user=membership.user,
                role=membership.role,
                joined_at=membership.joined_at,
                handle=mention_handle(as_mention_target(membership.user)),
            )
            for membership in memberships
        ]

    @staticmethod
    def _validate_name(name: str) -> str:
        cleaned = re.sub(r"\s+", " ", name or "").strip()
        if not GROUP_NAME_MIN_LENGTH <= len(cleaned) <= GROUP_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Group name must be {GROUP_NAME_MIN_LENGTH}-{GROUP_NAME_MAX_LENGTH} characters.",
                details={"name": len(cleaned)},
            )
        return cleaned

    @staticmethod
    def _validate_description(description: str | None) -> str | None:
        if description is None:
            return None
        cleaned = description.strip()
        if len(cleaned) > GROUP_DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                f"Description must be at most {GROUP_DESCRIPTION_MAX_LENGTH} characters.",
            )
        return cleaned or None

    @staticmethod
    def _pending_invite_conflict() -> ConflictError:
        return ConflictError(
            code=ErrorCode.INVITE_PENDING,
            message="This user already has a pending invite to the group.",
        )


def as_mention_target(user: User) -> MentionTarget:
    return MentionTarget(id=user.id, name=user.display_name, username=user.username)


__all__ = [
    "GroupListItem",
    "GroupService",
    "InviteDecision",
    "InviteOutcome",
    "MemberInfo",
    "as_mention_target",
]
