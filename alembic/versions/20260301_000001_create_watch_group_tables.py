"""Create users, watch groups, picks and chat tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20260301_000001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("timezone('utc', now())"),
    )


def upgrade() -> None:
    role_enum = sa.Enum("owner", "member", name="watch_group_role_enum", native_enum=False)
    invite_status_enum = sa.Enum(
        "pending",
        "accepted",
        "rejected",
        name="watch_group_invite_status_enum",
        native_enum=False,
    )
    media_type_enum = sa.Enum("movie", "show", name="watch_media_type_enum", native_enum=False)

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _timestamp("deleted_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_users_username_active",
        "users",
        ["username"],
        postgresql_where=sa.text("deleted = FALSE"),
    )

    op.create_table(
        "watch_groups",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("owner_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("description", sa.String(length=300), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _timestamp("deleted_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_watch_groups_owner_id_active",
        "watch_groups",
        ["owner_id"],
        postgresql_where=sa.text("deleted = FALSE"),
    )

    op.create_table(
        "watch_group_members",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("role", role_enum, nullable=False, server_default=sa.text("'member'")),
        _timestamp("joined_at"),
        _timestamp("last_seen_at"),
        sa.ForeignKeyConstraint(["group_id"], ["watch_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("group_id", "user_id", name="ux_watch_group_members_group_user"),
    )
    op.create_index("ix_watch_group_members_user_id", "watch_group_members", ["user_id"])

    op.create_table(
        "watch_group_invites",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", _uuid(), nullable=False),
        sa.Column("inviter_id", _uuid(), nullable=False),
        sa.Column("invitee_id", _uuid(), nullable=False),
        sa.Column(
            "status",
            invite_status_enum,
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        _timestamp("created_at"),
        _timestamp("responded_at", nullable=True),
        sa.ForeignKeyConstraint(["group_id"], ["watch_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["inviter_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invitee_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_watch_group_invites_group_id", "watch_group_invites", ["group_id"])
    op.create_index("ix_watch_group_invites_invitee_id", "watch_group_invites", ["invitee_id"])
    op.create_index(
        "ux_watch_group_invites_pending",
        "watch_group_invites",
        ["group_id", "invitee_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "watch_group_picks",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", _uuid(), nullable=False),
        sa.Column("sender_id", _uuid(), nullable=False),
        sa.Column("media_type", media_type_enum, nullable=False),
        sa.Column("media_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("poster_path", sa.String(length=500), nullable=True),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=400), nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["group_id"], ["watch_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "group_id",
            "media_type",
            "media_id",
            name="ux_watch_group_picks_group_media",
        ),
    )
    op.create_index(
        "ix_watch_group_picks_group_created",
        "watch_group_picks",
        ["group_id", "created_at"],
    )

    op.create_table(
        "watch_group_pick_votes",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("pick_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["pick_id"], ["watch_group_picks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("pick_id", "user_id", name="ux_watch_group_pick_votes_pick_user"),
        sa.CheckConstraint(
            "value IN (-1, 1)",
            name="ck_watch_group_pick_votes_value_is_unit",
        ),
    )

    op.create_table(
        "watch_group_pick_watches",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("pick_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        _timestamp("watched_at"),
        sa.ForeignKeyConstraint(["pick_id"], ["watch_group_picks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "pick_id",
            "user_id",
            name="ux_watch_group_pick_watches_pick_user",
        ),
    )

    op.create_table(
        "watch_group_messages",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", _uuid(), nullable=False),
        sa.Column("sender_id", _uuid(), nullable=False),
        sa.Column("body", sa.String(length=1200), nullable=True),
        sa.Column("reply_to_id", _uuid(), nullable=True),
        sa.Column("shared_media_type", media_type_enum, nullable=True),
        sa.Column("shared_media_id", sa.String(length=64), nullable=True),
        sa.Column("shared_title", sa.String(length=200), nullable=True),
        sa.Column("shared_poster_path", sa.String(length=500), nullable=True),
        sa.Column("shared_release_year", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["group_id"], ["watch_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["reply_to_id"],
            ["watch_group_messages.id"],
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "(shared_media_type IS NULL AND shared_media_id IS NULL AND shared_title IS NULL)"
            " OR (shared_media_type IS NOT NULL AND shared_media_id IS NOT NULL"
            " AND shared_title IS NOT NULL)",
            name="ck_watch_group_messages_shared_media_all_or_nothing",
        ),
        sa.CheckConstraint(
            "body IS NOT NULL OR shared_media_type IS NOT NULL",
            name="ck_watch_group_messages_body_or_shared_media",
        ),
    )
    op.create_index(
        "ix_watch_group_messages_group_created",
        "watch_group_messages",
        ["group_id", "created_at"],
    )

    op.create_table(
        "watch_group_message_reactions",
        sa.Column("id", _uuid(), primary_key=True, nullable=False),
        sa.Column("message_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("value", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["message_id"],
            ["watch_group_messages.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "message_id",
            "user_id",
            "value",
            name="ux_watch_group_message_reactions_message_user_value",
        ),
    )
    op.create_index(
        "ix_watch_group_message_reactions_message_id",
        "watch_group_message_reactions",
        ["message_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_watch_group_message_reactions_message_id",
        table_name="watch_group_message_reactions",
    )
    op.drop_table("watch_group_message_reactions")

    op.drop_index("ix_watch_group_messages_group_created", table_name="watch_group_messages")
    op.drop_table("watch_group_messages")

    op.drop_table("watch_group_pick_watches")
    op.drop_table("watch_group_pick_votes")

    op.drop_index("ix_watch_group_picks_group_created", table_name="watch_group_picks")
    op.drop_table("watch_group_picks")

    op.drop_index("ux_watch_group_invites_pending", table_name="watch_group_invites")
    op.drop_index("ix_watch_group_invites_invitee_id", table_name="watch_group_invites")
    op.drop_index("ix_watch_group_invites_group_id", table_name="watch_group_invites")
    op.drop_table("watch_group_invites")

    op.drop_index("ix_watch_group_members_user_id", table_name="watch_group_members")
    op.drop_table("watch_group_members")

    op.drop_index("ix_watch_groups_owner_id_active", table_name="watch_groups")
    op.drop_table("watch_groups")

    op.drop_index("ix_users_username_active", table_name="users")
    op.drop_table("users")
