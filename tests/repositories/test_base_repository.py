"""Tests for base repository."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError

from groupwatch.core.errors import ErrorCode, SchemaUnavailableError
from groupwatch.models.group import GroupMember
from groupwatch.repositories.base import BaseRepository, DuplicateRecordError, translate_store_error
from groupwatch.repositories.group import GroupMemberRepository, GroupRepository
from tests.helpers import add_users, make_user


class _DriverError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


@pytest.mark.asyncio
async def test_base_repository_add() -> None:
    """Test BaseRepository add method."""
    mock_session = AsyncMock()
    mock_session.add = AsyncMock()
    mock_session.flush = AsyncMock()

    repo = BaseRepository(mock_session)

    instance = object()
    result = await repo.add(instance)

    assert result is instance
    mock_session.add.assert_called_once_with(instance)
    mock_session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_base_repository_session_access() -> None:
    """Test that BaseRepository stores session."""
    mock_session = AsyncMock()
    repo = BaseRepository(mock_session)

    assert repo.session is mock_session


def test_translate_store_error_maps_missing_table() -> None:
    error = DBAPIError("SELECT 1", None, _DriverError("42P01"))

    translated = translate_store_error(error)

    assert isinstance(translated, SchemaUnavailableError)
    assert translated.code == ErrorCode.SCHEMA_UNAVAILABLE
    assert translated.details == {"sqlstate": "42P01"}


def test_translate_store_error_passes_other_errors_through() -> None:
    error = DBAPIError("SELECT 1", None, _DriverError("22001"))

    assert translate_store_error(error) is error


@pytest.mark.asyncio
async def test_execute_translates_schema_errors() -> None:
    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(
        side_effect=DBAPIError("SELECT 1", None, _DriverError("42703"))
    )
    repo = BaseRepository(mock_session)

    with pytest.raises(SchemaUnavailableError):
        await repo.execute(select(1))


@pytest.mark.asyncio
async def test_flush_reraises_untranslated_errors() -> None:
    mock_session = AsyncMock()
    mock_session.flush = AsyncMock(
        side_effect=IntegrityError("INSERT", None, _DriverError("23503"))
    )
    repo = BaseRepository(mock_session)

    with pytest.raises(IntegrityError):
        await repo.flush()


@pytest.mark.asyncio
async def test_add_unique_reports_duplicates_and_keeps_session_usable(db_session) -> None:
    alice = make_user("Alice")
    await add_users(db_session, alice)
    group = await GroupRepository(db_session).create(owner_id=alice.id, name="Dupes")
    members = GroupMemberRepository(db_session)
    before = REGISTRY.get_sample_value(
        "groupwatch_store_conflicts_total", {"entity": "membership"}
    ) or 0.0

    with pytest.raises(DuplicateRecordError) as excinfo:
        await members.add_member(group.id, alice.id)

    assert excinfo.value.entity == "membership"
    after = REGISTRY.get_sample_value("groupwatch_store_conflicts_total", {"entity": "membership"})
    assert after == before + 1
    result = await db_session.execute(select(GroupMember).where(GroupMember.group_id == group.id))
    assert len(result.scalars().all()) == 1
