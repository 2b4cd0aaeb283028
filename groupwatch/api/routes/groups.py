"""Group lifecycle, membership and invite endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.auth import get_current_user
from groupwatch.core.db import get_session
from groupwatch.models.group import Group, GroupInvite, GroupInviteStatus, GroupRole
from groupwatch.models.user import User
from groupwatch.repositories.chat import MessageRepository
from groupwatch.repositories.group import (
    GroupInviteRepository,
    GroupMemberRepository,
    GroupRepository,
)
from groupwatch.repositories.user import UserRepository
from groupwatch.schemas.group import (
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
from groupwatch.services.group import GroupListItem, GroupService, MemberInfo


async def get_group_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> GroupService:
    """Wire repositories into the group service."""
    return GroupService(
        GroupRepository(session),
        GroupMemberRepository(session),
        GroupInviteRepository(session),
        UserRepository(session),
        MessageRepository(session),
    )


router = APIRouter(prefix="/groups", tags=["groups"])

CurrentUser = Annotated[User, Depends(get_current_user)]
GroupServiceDep = Annotated[GroupService, Depends(get_group_service)]


def _serialize_group(item: GroupListItem) -> GroupResponse:
    group = item.group
    return GroupResponse(
        id=group.id,
        owner_id=group.owner_id,
        name=group.name,
        description=group.description,
        role=item.role,
        members_count=item.member_count,
        unseen_count=item.unseen_count,
        created_at=group.created_at,
        updated_at=group.updated_at,
    )


def _owned_group(group: Group, member_count: int) -> GroupResponse:
    return _serialize_group(
        GroupListItem(group=group, role=GroupRole.OWNER, member_count=member_count, unseen_count=0)
    )


def _serialize_member(member: MemberInfo) -> GroupMemberResponse:
    user = member.user
    return GroupMemberResponse(
        user_id=user.id,
        name=user.display_name,
        username=user.username,
        handle=member.handle,
        avatar_url=user.avatar_url,
        role=member.role,
        joined_at=member.joined_at,
    )


def _serialize_invite(
    invite: GroupInvite,
    *,
    group_name: str | None = None,
    inviter_name: str | None = None,
    invitee_name: str | None = None,
) -> GroupInviteResponse:
    return GroupInviteResponse(
        invite_id=invite.id,
        group_id=invite.group_id,
        group_name=group_name,
        inviter_id=invite.inviter_id,
        inviter_name=inviter_name,
        invitee_id=invite.invitee_id,
        invitee_name=invitee_name,
        status=invite.status,
        created_at=invite.created_at,
    )


@router.get("", response_model=GroupListResponse)
async def list_groups(
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupListResponse:
    items = await service.list_groups(user)
    return GroupListResponse(data=[_serialize_group(item) for item in items])


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: GroupCreateRequest,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupResponse:
    group = await service.create_group(user, payload.name, description=payload.description)
    await service.session.commit()
    return _owned_group(group, member_count=1)


@router.get("/invites/incoming", response_model=GroupInviteListResponse)
async def list_incoming_invites(
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupInviteListResponse:
    invites = await service.list_incoming_invites(user)
    return GroupInviteListResponse(
        data=[
            _serialize_invite(
                invite,
                group_name=invite.group.name,
                inviter_name=invite.inviter.display_name,
                invitee_name=user.display_name,
            )
            for invite in invites
        ]
    )


@router.post("/invites/{invite_id}/respond", response_model=GroupInviteRespondResponse)
async def respond_to_invite(
    invite_id: UUID,
    payload: GroupInviteRespondRequest,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupInviteRespondResponse:
    outcome = await service.respond_to_invite(user, invite_id, payload.decision)
    await service.session.commit()
    accepted = outcome.invite.status == GroupInviteStatus.ACCEPTED
    return GroupInviteRespondResponse(
        invite_id=outcome.invite.id,
        status=outcome.invite.status,
        group_id=outcome.group_id if accepted else None,
    )


@router.patch("/{group_id}", response_model=GroupResponse)
async def rename_group(
    group_id: UUID,
    payload: GroupUpdateRequest,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupResponse:
    group = await service.rename_group(
        user,
        group_id,
        payload.name,
        description=payload.description,
    )
    member_count = await service.member_count(group.id)
    await service.session.commit()
    return _owned_group(group, member_count=member_count)


@router.delete("/{group_id}")
async def delete_group(
    group_id: UUID,
    user: CurrentUser,
    service: GroupServiceDep,
) -> Response:
    await service.delete_group(user, group_id)
    await service.session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}/members", response_model=GroupMemberListResponse)
async def list_members(
    group_id: UUID,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupMemberListResponse:
    members = await service.list_members(user, group_id)
    return GroupMemberListResponse(data=[_serialize_member(member) for member in members])


@router.delete("/{group_id}/members/{member_id}")
async def remove_member(
    group_id: UUID,
    member_id: UUID,
    user: CurrentUser,
    service: GroupServiceDep,
) -> Response:
    await service.remove_member(user, group_id, member_id)
    await service.session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{group_id}/leave")
async def leave_group(
    group_id: UUID,
    user: CurrentUser,
    service: GroupServiceDep,
) -> Response:
    await service.leave_group(user, group_id)
    await service.session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{group_id}/invites",
    response_model=GroupInviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    group_id: UUID,
    payload: GroupInviteRequest,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupInviteResponse:
    invite = await service.invite_member(user, group_id, payload.user_id)
    await service.session.commit()
    return _serialize_invite(invite, inviter_name=user.display_name)


@router.get("/{group_id}/invites", response_model=GroupInviteListResponse)
async def list_pending_invites(
    group_id: UUID,
    user: CurrentUser,
    service: GroupServiceDep,
) -> GroupInviteListResponse:
    invites = await service.list_pending_invites(user, group_id)
    return GroupInviteListResponse(
        data=[
            _serialize_invite(invite, invitee_name=invite.invitee.display_name)
            for invite in invites
        ]
    )
