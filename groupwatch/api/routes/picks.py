"""Group pick endpoints: proposals, votes and watch marks."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.auth import get_current_user
from groupwatch.core.db import get_session
from groupwatch.models.user import User
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository
from groupwatch.repositories.pick import (
    PickRepository,
    PickVoteRepository,
    PickWatchRepository,
)
from groupwatch.schemas.pick import (
    PickCreateRequest,
    PickCreatedResponse,
    PickListResponse,
    PickResponse,
    PickVoteRequest,
    PickVoteResponse,
    PickWatchResponse,
)
from groupwatch.services.picks import PickService, PickSort, PickView


async def get_pick_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PickService:
    """Wire repositories into the pick service."""
    return PickService(
        GroupRepository(session),
        GroupMemberRepository(session),
        PickRepository(session),
        PickVoteRepository(session),
        PickWatchRepository(session),
    )


router = APIRouter(prefix="/groups/{group_id}/picks", tags=["picks"])

CurrentUser = Annotated[User, Depends(get_current_user)]
PickServiceDep = Annotated[PickService, Depends(get_pick_service)]


def _serialize_pick(view: PickView) -> PickResponse:
    pick = view.pick
    return PickResponse(
        id=pick.id,
        group_id=pick.group_id,
        sender_id=pick.sender_id,
        sender_name=pick.sender.display_name,
        media_type=pick.media_type,
        media_id=pick.media_id,
        title=pick.title,
        poster_path=pick.poster_path,
        release_year=pick.release_year,
        note=pick.note,
        score=view.score,
        upvotes=view.upvotes,
        downvotes=view.downvotes,
        viewer_vote=view.viewer_vote,
        watched_count=view.watched_count,
        required_watched_count=view.required_watched_count,
        watched_by_viewer=view.watched_by_viewer,
        created_at=pick.created_at,
    )


@router.get("", response_model=PickListResponse)
async def list_picks(
    group_id: UUID,
    user: CurrentUser,
    service: PickServiceDep,
    sort: Annotated[
        PickSort,
        Query(description="Order by score (ties newest first) or strictly newest first."),
    ] = PickSort.SCORE,
) -> PickListResponse:
    views = await service.list_visible_picks(user, group_id, sort=sort)
    # listing latches completed picks and moves the seen marker
    await service.session.commit()
    return PickListResponse(data=[_serialize_pick(view) for view in views])


@router.post("", response_model=PickCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_pick(
    group_id: UUID,
    payload: PickCreateRequest,
    user: CurrentUser,
    service: PickServiceDep,
) -> PickCreatedResponse:
    pick = await service.add_pick(
        user,
        group_id,
        media_type=payload.media_type,
        media_id=payload.media_id,
        title=payload.title,
        poster_path=payload.poster_path,
        release_year=payload.release_year,
        note=payload.note,
    )
    await service.session.commit()
    return PickCreatedResponse(
        id=pick.id,
        group_id=pick.group_id,
        media_type=pick.media_type,
        media_id=pick.media_id,
        title=pick.title,
        created_at=pick.created_at,
    )


@router.delete("/{pick_id}")
async def delete_pick(
    group_id: UUID,
    pick_id: UUID,
    user: CurrentUser,
    service: PickServiceDep,
) -> Response:
    await service.delete_pick(user, group_id, pick_id)
    await service.session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{pick_id}/vote", response_model=PickVoteResponse)
async def vote_on_pick(
    group_id: UUID,
    pick_id: UUID,
    payload: PickVoteRequest,
    user: CurrentUser,
    service: PickServiceDep,
) -> PickVoteResponse:
    value = await service.vote_on_pick(user, group_id, pick_id, payload.value)
    await service.session.commit()
    return PickVoteResponse(pick_id=pick_id, value=value)


@router.delete("/{pick_id}/vote", response_model=PickVoteResponse)
async def clear_vote(
    group_id: UUID,
    pick_id: UUID,
    user: CurrentUser,
    service: PickServiceDep,
) -> PickVoteResponse:
    await service.clear_vote(user, group_id, pick_id)
    await service.session.commit()
    return PickVoteResponse(pick_id=pick_id, value=None)


@router.post("/{pick_id}/watched", response_model=PickWatchResponse)
async def mark_watched(
    group_id: UUID,
    pick_id: UUID,
    user: CurrentUser,
    service: PickServiceDep,
) -> PickWatchResponse:
    result = await service.mark_watched(user, group_id, pick_id)
    await service.session.commit()
    return PickWatchResponse(
        pick_id=result.pick_id,
        watched_count=result.watched_count,
        required_watched_count=result.required_watched_count,
        visible=result.visible,
    )
