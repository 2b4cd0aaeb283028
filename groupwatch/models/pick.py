"""Pick ledger models: suggested titles, votes and watch marks."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupwatch.models.base import GUID, Base, TimestampMixin, utcnow
from groupwatch.models.user import User

PICK_TITLE_MAX_LENGTH = 200
PICK_POSTER_MAX_LENGTH = 500
PICK_NOTE_MAX_LENGTH = 400
MEDIA_ID_MAX_LENGTH = 64


class MediaType(str, enum.Enum):
    MOVIE = "movie"
    SHOW = "show"


class Pick(TimestampMixin, Base):
    """
    A title suggested to the group.

    ``completed_at`` latches the first time every member has watched the pick,
    so the pick stays hidden even if the roster grows afterwards.
    """

    __tablename__ = "watch_group_picks"

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
    media_type: Mapped[MediaType] = mapped_column(
        Enum(
            MediaType,
            name="watch_media_type_enum",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    media_id: Mapped[str] = mapped_column(String(MEDIA_ID_MAX_LENGTH), nullable=False)
    title: Mapped[str] = mapped_column(String(PICK_TITLE_MAX_LENGTH), nullable=False)
    poster_path: Mapped[str | None] = mapped_column(String(PICK_POSTER_MAX_LENGTH))
    release_year: Mapped[int | None] = mapped_column(Integer)
    note: Mapped[str | None] = mapped_column(String(PICK_NOTE_MAX_LENGTH))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    sender: Mapped[User] = relationship("User", lazy="raise")

    __table_args__ = (
        UniqueConstraint(
            "group_id",
            "media_type",
            "media_id",
            name="ux_watch_group_picks_group_media",
        ),
        Index("ix_watch_group_picks_group_created", "group_id", "created_at"),
    )


class PickVote(Base):
    """One member's up (+1) or down (-1) vote on a pick."""

    __tablename__ = "watch_group_pick_votes"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pick_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_group_picks.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("pick_id", "user_id", name="ux_watch_group_pick_votes_pick_user"),
        CheckConstraint("value IN (-1, 1)", name="value_is_unit"),
    )


class PickWatch(Base):
    """Record that a member has watched a pick."""

    __tablename__ = "watch_group_pick_watches"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    pick_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_group_picks.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    watched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("pick_id", "user_id", name="ux_watch_group_pick_watches_pick_user"),
    )


__all__ = [
    "MEDIA_ID_MAX_LENGTH",
    "MediaType",
    "PICK_NOTE_MAX_LENGTH",
    "PICK_POSTER_MAX_LENGTH",
    "PICK_TITLE_MAX_LENGTH",
    "Pick",
    "PickVote",
    "PickWatch",
]
