"""User repository."""

from __future__ import annotations

import uuid

from groupwatch.models.user import User
from groupwatch.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Encapsulates persistence logic for User entities."""

    async def create(
        self,
        *,
        name: str,
        username: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        user = User(name=name, username=username, avatar_url=avatar_url)
        await self.add(user)
        return user

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self.session.get(User, user_id)

    async def get_active(self, user_id: uuid.UUID) -> User | None:
        user = await self.get(user_id)
        if user is None or user.deleted:
            return None
        return user


__all__ = ["UserRepository"]
