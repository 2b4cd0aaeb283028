"""Common helpers for repository implementations."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Executable, Result
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from groupwatch.core.db import extract_sqlstate, is_schema_missing, is_unique_violation
from groupwatch.core.errors import SchemaUnavailableError
from groupwatch.core.metrics import record_store_conflict

ModelT = TypeVar("ModelT")

logger = logging.getLogger(__name__)


class DuplicateRecordError(Exception):
    """An insert collided with a unique constraint enforced by the data store."""

    def __init__(self, entity: str) -> None:
        super().__init__(f"Duplicate {entity} record.")
        self.entity = entity


def translate_store_error(error: DBAPIError) -> Exception:
    """Map a driver error onto the error taxonomy by SQLSTATE; unknown errors pass through."""
    if is_schema_missing(error):
        return SchemaUnavailableError(details={"sqlstate": extract_sqlstate(error)})
    return error


class BaseRepository(Generic[ModelT]):
    """Lightweight helper storing the AsyncSession dependency."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, instance: ModelT) -> ModelT:
        """Add model to session handling async mocks in tests."""
        add_result = cast(object, self.session.add(instance))
        if isinstance(add_result, Awaitable):
            await add_result
        await self.flush()
        return instance

    async def add_unique(self, instance: ModelT, *, entity: str) -> ModelT:
        """
        Insert inside a savepoint so a unique-constraint collision leaves the
        surrounding transaction usable.

        Raises:
            DuplicateRecordError: the store rejected the row as a duplicate.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(instance)
                await self.session.flush()
        except DBAPIError as exc:
            if is_unique_violation(exc):
                record_store_conflict(entity)
                logger.info("Unique constraint race resolved by the store", extra={"entity": entity})
                raise DuplicateRecordError(entity) from exc
            translated = translate_store_error(exc)
            if translated is exc:
                raise
            raise translated from exc
        return instance

    async def flush(self) -> None:
        try:
            await self.session.flush()
        except DBAPIError as exc:
            translated = translate_store_error(exc)
            if translated is exc:
                raise
            raise translated from exc

    async def execute(self, statement: Executable, params: dict[str, Any] | None = None) -> Result[Any]:
        try:
            return await self.session.execute(statement, params)
        except DBAPIError as exc:
            translated = translate_store_error(exc)
            if translated is exc:
                raise
            raise translated from exc


__all__ = ["BaseRepository", "DuplicateRecordError", "translate_store_error"]
