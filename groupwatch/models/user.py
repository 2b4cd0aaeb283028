"""User ORM model (projection of the identity provider's profile)."""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from groupwatch.models.base import GUID, Base, SoftDeleteMixin, TimestampMixin


class User(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    username: Mapped[str | None] = mapped_column(String(64))
    avatar_url: Mapped[str | None] = mapped_column(String(500))

    @property
    def display_name(self) -> str:
        return self.name.strip() or self.username or "Member"

    __table_args__ = (
        Index(
            "ix_users_username_active",
            "username",
            postgresql_where=text("deleted = FALSE"),
        ),
    )


__all__ = ["User"]
