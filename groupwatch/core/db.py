"""Database engine, session configuration and store-error classification."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Final

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from groupwatch.core.config import settings

UNDEFINED_TABLE: Final[str] = "42P01"
UNDEFINED_COLUMN: Final[str] = "42703"
UNDEFINED_FUNCTION: Final[str] = "42883"
UNIQUE_VIOLATION: Final[str] = "23505"

SCHEMA_MISSING_SQLSTATES: Final[frozenset[str]] = frozenset(
    {UNDEFINED_TABLE, UNDEFINED_COLUMN, UNDEFINED_FUNCTION}
)


def _build_engine() -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.sql_echo,
        pool_pre_ping=True,
    )


engine: AsyncEngine = _build_engine()
AsyncSessionFactory = async_sessionmaker(engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a scoped AsyncSession."""

    async with AsyncSessionFactory() as session:
        yield session


async def dispose_engine() -> None:
    """Close the global engine (used in application shutdown hooks or tests)."""

    await engine.dispose()


def extract_sqlstate(error: DBAPIError) -> str | None:
    """
    Return the SQLSTATE carried by a driver error, if the driver exposes one.

    asyncpg raises its own exception classes with ``sqlstate``; SQLAlchemy's
    asyncpg adapter wraps them and keeps the original as ``__cause__``.
    psycopg exposes ``pgcode``. SQLite reports no SQLSTATE at all.
    """
    candidates: list[object] = [error.orig]
    orig = error.orig
    if orig is not None:
        candidates.append(getattr(orig, "__cause__", None))
    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def is_schema_missing(error: DBAPIError) -> bool:
    return extract_sqlstate(error) in SCHEMA_MISSING_SQLSTATES


def is_unique_violation(error: DBAPIError) -> bool:
    sqlstate = extract_sqlstate(error)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION
    if not isinstance(error, IntegrityError):
        return False
    # sqlite reports an extended result code name instead of a SQLSTATE
    code_name = getattr(error.orig, "sqlite_errorname", None)
    if code_name is None:
        return True
    return code_name in {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}


__all__ = [
    "AsyncSessionFactory",
    "SCHEMA_MISSING_SQLSTATES",
    "UNIQUE_VIOLATION",
    "dispose_engine",
    "engine",
    "extract_sqlstate",
    "get_session",
    "is_schema_missing",
    "is_unique_violation",
]
