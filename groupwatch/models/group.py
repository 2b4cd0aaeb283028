"""Watch group, membership and invite models."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupwatch.models.base import GUID, Base, SoftDeleteMixin, TimestampMixin, utcnow
from groupwatch.models.user import User

GROUP_NAME_MIN_LENGTH = 2
GROUP_NAME_MAX_LENGTH = 60
GROUP_DESCRIPTION_MAX_LENGTH = 300


class GroupRole(str, enum.Enum):
    """User role within a group."""

    OWNER = "owner"
    MEMBER = "member"


class Group(SoftDeleteMixin, TimestampMixin, Base):
    """A named circle of users that share picks and a chat."""

    __tablename__ = "watch_groups"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(GROUP_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(String(GROUP_DESCRIPTION_MAX_LENGTH))

    owner: Mapped[User] = relationship("User", lazy="raise")
    members: Mapped[list[GroupMember]] = relationship(
        "GroupMember",
        back_populates="group",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        Index(
            "ix_watch_groups_owner_id_active",
            "owner_id",
            postgresql_where=text("deleted = FALSE"),
        ),
    )


class GroupMember(Base):
    """
    Membership of a user in a group.

    ``last_seen_at`` is the per-member "seen" marker used for unread counts; it
    starts at the join time so a new member has no backlog.
    """

    __tablename__ = "watch_group_members"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[GroupRole] = mapped_column(
        Enum(
            GroupRole,
            name="watch_group_role_enum",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=GroupRole.MEMBER,
        server_default=text("'member'"),
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    group: Mapped[Group] = relationship("Group", back_populates="members", lazy="raise")
    user: Mapped[User] = relationship("User", lazy="raise")

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="ux_watch_group_members_group_user"),
        Index("ix_watch_group_members_user_id", "user_id"),
    )


class GroupInviteStatus(str, enum.Enum):
    """Lifecycle of a group invite."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class GroupInvite(Base):
    """Invite sent by the owner to bring a new member in."""

    __tablename__ = "watch_group_invites"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("watch_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    inviter_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    invitee_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[GroupInviteStatus] = mapped_column(
        Enum(
            GroupInviteStatus,
            name="watch_group_invite_status_enum",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=GroupInviteStatus.PENDING,
        server_default=text("'pending'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    group: Mapped[Group] = relationship("Group", lazy="raise")
    inviter: Mapped[User] = relationship("User", foreign_keys=[inviter_id], lazy="raise")
    invitee: Mapped[User] = relationship("User", foreign_keys=[invitee_id], lazy="raise")

    __table_args__ = (
        Index("ix_watch_group_invites_group_id", "group_id"),
        Index("ix_watch_group_invites_invitee_id", "invitee_id"),
        Index(
            "ux_watch_group_invites_pending",
            "group_id",
            "invitee_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )


__all__ = [
    "GROUP_DESCRIPTION_MAX_LENGTH",
    "GROUP_NAME_MAX_LENGTH",
    "GROUP_NAME_MIN_LENGTH",
    "Group",
    "GroupInvite",
    "GroupInviteStatus",
    "GroupMember",
    "GroupRole",
]
