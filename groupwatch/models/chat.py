"""Group chat models: messages with optional shared media, and reactions."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupwatch.models.base import GUID, Base, utcnow
from groupwatch.models.pick import (
    MEDIA_ID_MAX_LENGTH,
    PICK_POSTER_MAX_LENGTH,
    PICK_TITLE_MAX_LENGTH,
    MediaType,
)
from groupwatch.models.user import User

MESSAGE_BODY_MAX_LENGTH = 1200
REACTION_MAX_LENGTH = 16


class Message(Base):
    """A chat message; either a text body, a shared title, or both."""

    __tablename__ = "watch_group_messages"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    body: Mapped[str | None] = mapped_column(String(MESSAGE_BODY_MAX_LENGTH))
    reply_to_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(),
        ForeignKey("watch_group_messages.id", ondelete="SET NULL"),
    )

    shared_media_type: Mapped[MediaType | None] = mapped_column(
        Enum(
            MediaType,
            name="watch_media_type_enum",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
    )
    shared_media_id: Mapped[str | None] = mapped_column(String(MEDIA_ID_MAX_LENGTH))
    shared_title: Mapped[str | None] = mapped_column(String(PICK_TITLE_MAX_LENGTH))
    shared_poster_path: Mapped[str | None] = mapped_column(String(PICK_POSTER_MAX_LENGTH))
    shared_release_year: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    sender: Mapped[User] = relationship("User", lazy="raise")

    @property
    def has_shared_media(self) -> bool:
        return self.shared_media_type is not None

    __table_args__ = (
        Index("ix_watch_group_messages_group_created", "group_id", "created_at"),
        CheckConstraint(
            "(shared_media_type IS NULL AND shared_media_id IS NULL AND shared_title IS NULL)"
            " OR (shared_media_type IS NOT NULL AND shared_media_id IS NOT NULL"
            " AND shared_title IS NOT NULL)",
            name="shared_media_all_or_nothing",
        ),
        CheckConstraint(
            "body IS NOT NULL OR shared_media_type IS NOT NULL",
            name="body_or_shared_media",
        ),
    )


class MessageReaction(Base):
    """A member's emoji reaction on a message."""

    __tablename__ = "watch_group_message_reactions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    message_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_group_messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(String(REACTION_MAX_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "message_id",
            "user_id",
            "value",
            name="ux_watch_group_message_reactions_message_user_value",
        ),
        Index("ix_watch_group_message_reactions_message_id", "message_id"),
    )


__all__ = ["MESSAGE_BODY_MAX_LENGTH", "Message", "MessageReaction", "REACTION_MAX_LENGTH"]
