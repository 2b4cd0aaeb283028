from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError

from groupwatch.core.db import extract_sqlstate, is_schema_missing, is_unique_violation


class _PgError(Exception):
    def __init__(self, *, sqlstate: str | None = None, pgcode: str | None = None) -> None:
        super().__init__("driver error")
        self.sqlstate = sqlstate
        self.pgcode = pgcode


class _SqliteError(Exception):
    def __init__(self, errorname: str) -> None:
        super().__init__(errorname)
        self.sqlite_errorname = errorname


def test_extract_sqlstate_reads_driver_attributes() -> None:
    assert extract_sqlstate(DBAPIError("q", None, _PgError(sqlstate="42P01"))) == "42P01"
    assert extract_sqlstate(DBAPIError("q", None, _PgError(pgcode="23505"))) == "23505"


def test_extract_sqlstate_follows_wrapped_cause() -> None:
    wrapper = Exception("adapted")
    wrapper.__cause__ = _PgError(sqlstate="42703")

    assert extract_sqlstate(DBAPIError("q", None, wrapper)) == "42703"


def test_extract_sqlstate_without_code() -> None:
    error = DBAPIError("q", None, Exception("plain"))

    assert extract_sqlstate(error) is None


def test_is_schema_missing() -> None:
    assert is_schema_missing(DBAPIError("q", None, _PgError(sqlstate="42P01")))
    assert not is_schema_missing(DBAPIError("q", None, _PgError(sqlstate="23505")))


def test_is_unique_violation_for_postgres_and_sqlite() -> None:
    assert is_unique_violation(IntegrityError("q", None, _PgError(sqlstate="23505")))
    assert not is_unique_violation(IntegrityError("q", None, _PgError(sqlstate="23503")))
    assert is_unique_violation(IntegrityError("q", None, _SqliteError("SQLITE_CONSTRAINT_UNIQUE")))
    assert not is_unique_violation(
        IntegrityError("q", None, _SqliteError("SQLITE_CONSTRAINT_CHECK"))
    )
    assert not is_unique_violation(DBAPIError("q", None, _SqliteError("SQLITE_BUSY")))
