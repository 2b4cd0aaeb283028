"""Group chat endpoints: messages, replies and reactions."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.auth import get_current_user
from groupwatch.core.config import settings
from groupwatch.core.db import get_session
from groupwatch.models.user import User
from groupwatch.repositories.chat import MessageRepository, ReactionRepository
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository
from groupwatch.schemas.chat import (
    MentionSegmentResponse,
    MessageCreateRequest,
    MessageCreatedResponse,
    MessageListResponse,
    MessageResponse,
    ReactionSummaryResponse,
    ReactionToggleRequest,
    ReactionToggleResponse,
    ReplyPreviewResponse,
    SharedMediaPayload,
    UnseenCountResponse,
)
from groupwatch.services.chat import ChatService, MessageView, SharedMedia


async def get_chat_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ChatService:
    """Wire repositories into the chat service."""
    return ChatService(
        GroupRepository(session),
        GroupMemberRepository(session),
        MessageRepository(session),
        ReactionRepository(session),
        page_size=settings.message_page_size,
    )


router = APIRouter(prefix="/groups/{group_id}", tags=["chat"])

CurrentUser = Annotated[User, Depends(get_current_user)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


def _serialize_message(view: MessageView) -> MessageResponse:
    message = view.message
    media = view.shared_media
    preview = view.reply_preview
    return MessageResponse(
        id=message.id,
        group_id=message.group_id,
        sender_id=message.sender_id,
        sender_name=view.sender_name,
        body=message.body,
        segments=[
            MentionSegmentResponse(text=segment.text, is_mention=segment.is_mention)
            for segment in (view.segments if view.segments is not None else ())
        ],
        shared_media=(
            SharedMediaPayload(
                media_type=media.media_type,
                media_id=media.media_id,
                title=media.title,
                poster_path=media.poster_path,
                release_year=media.release_year,
            )
            if media is not None
            else None
        ),
        reply_to_id=message.reply_to_id,
        reply_preview=(
            ReplyPreviewResponse(
                message_id=preview.message_id,
                sender_name=preview.sender_name,
                text=preview.text,
            )
            if preview is not None
            else None
        ),
        reactions=[
            ReactionSummaryResponse(
                value=reaction.value,
                count=reaction.count,
                reacted_by_viewer=reaction.reacted_by_viewer,
            )
            for reaction in view.reactions
        ],
        created_at=message.created_at,
    )


@router.get("/messages", response_model=MessageListResponse)
async def list_messages(
    group_id: UUID,
    user: CurrentUser,
    service: ChatServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> MessageListResponse:
    views = await service.list_messages(user, group_id, limit=limit)
    # reading the chat moves the seen marker
    await service.session.commit()
    return MessageListResponse(data=[_serialize_message(view) for view in views])


@router.post(
    "/messages",
    response_model=MessageCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    group_id: UUID,
    payload: MessageCreateRequest,
    user: CurrentUser,
    service: ChatServiceDep,
) -> MessageCreatedResponse:
    shared = payload.shared_media
    message = await service.send_message(
        user,
        group_id,
        payload.body,
        shared_media=(
            SharedMedia(
                media_type=shared.media_type,
                media_id=shared.media_id,
                title=shared.title,
                poster_path=shared.poster_path,
                release_year=shared.release_year,
            )
            if shared is not None
            else None
        ),
        reply_to_id=payload.reply_to_id,
    )
    await service.session.commit()
    return MessageCreatedResponse(
        id=message.id,
        group_id=message.group_id,
        reply_to_id=message.reply_to_id,
        created_at=message.created_at,
    )


@router.post(
    "/messages/{message_id}/reactions",
    response_model=ReactionToggleResponse,
)
async def toggle_reaction(
    group_id: UUID,
    message_id: UUID,
    payload: ReactionToggleRequest,
    user: CurrentUser,
    service: ChatServiceDep,
) -> ReactionToggleResponse:
    active = await service.toggle_reaction(user, group_id, message_id, payload.value)
    await service.session.commit()
    return ReactionToggleResponse(message_id=message_id, value=payload.value, active=active)


@router.get("/unseen", response_model=UnseenCountResponse)
async def unseen_count(
    group_id: UUID,
    user: CurrentUser,
    service: ChatServiceDep,
) -> UnseenCountResponse:
    count = await service.unseen_count(user, group_id)
    return UnseenCountResponse(group_id=group_id, unseen_count=count)
