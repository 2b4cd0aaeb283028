"""Shared error primitives and FastAPI exception handlers."""

from __future__ import annotations

import logging
from enum import StrEnum
from http import HTTPStatus
from typing import Awaitable, Callable, Mapping, Sequence, cast

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

ExceptionHandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

logger = logging.getLogger("groupwatch.errors")


class ErrorCode(StrEnum):
    """Canonical error codes shared by the API and the sync client."""

    # Authentication & authorization
    AUTH_FAILED = "AUTH_FAILED"
    FORBIDDEN = "FORBIDDEN"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    OWNER_CANNOT_LEAVE = "OWNER_CANNOT_LEAVE"
    CANNOT_REMOVE_OWNER = "CANNOT_REMOVE_OWNER"
    INVITE_NOT_PENDING = "INVITE_NOT_PENDING"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Resources
    USER_NOT_FOUND = "USER_NOT_FOUND"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    INVITE_NOT_FOUND = "INVITE_NOT_FOUND"
    PICK_NOT_FOUND = "PICK_NOT_FOUND"
    MESSAGE_NOT_FOUND = "MESSAGE_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    # Conflicts
    ALREADY_MEMBER = "ALREADY_MEMBER"
    INVITE_PENDING = "INVITE_PENDING"
    DUPLICATE_PICK = "DUPLICATE_PICK"
    CONFLICT = "CONFLICT"

    # Storage
    SCHEMA_UNAVAILABLE = "SCHEMA_UNAVAILABLE"

    # Transport/common
    INTERNAL_ERROR = "INTERNAL_ERROR"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ApplicationError(Exception):
    """Domain/business error that should be rendered in the public API."""

    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        *,
        status_code: int | None = None,
        details: object | None = None,
    ) -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = message
        self.status_code = status_code or self.default_status
        self.details = details


class ValidationError(ApplicationError):
    """Malformed input: lengths, empty messages, unknown enum values."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | str = ErrorCode.VALIDATION_ERROR,
        details: object | None = None,
    ) -> None:
        super().__init__(code=code, message=message, details=details)


class PermissionDeniedError(ApplicationError):
    """Caller is not a member, not the owner, or not the invite addressee."""

    default_status = status.HTTP_403_FORBIDDEN


class NotFoundError(ApplicationError):
    """404 error with a domain specific code."""

    default_status = status.HTTP_404_NOT_FOUND


class ConflictError(ApplicationError):
    """409 error for duplicate/conflict scenarios."""

    default_status = status.HTTP_409_CONFLICT


class SchemaUnavailableError(ApplicationError):
    """The data store lacks a table/column the requested feature relies on."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str = "This feature is not provisioned in the data store yet.",
        *,
        details: object | None = None,
    ) -> None:
        super().__init__(code=ErrorCode.SCHEMA_UNAVAILABLE, message=message, details=details)


_ERRORS_BY_STATUS: dict[int, type[ApplicationError]] = {
    status.HTTP_400_BAD_REQUEST: ValidationError,
    status.HTTP_401_UNAUTHORIZED: PermissionDeniedError,
    status.HTTP_403_FORBIDDEN: PermissionDeniedError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ConflictError,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError,
}


def error_from_payload(status_code: int, payload: Mapping[str, object] | None) -> ApplicationError:
    """Rebuild a typed error from the public error envelope (used by API clients)."""
    section = payload.get("error") if isinstance(payload, Mapping) else None
    if not isinstance(section, Mapping):
        section = {}
    code = _coerce_code(cast(str | None, section.get("code")) or _default_code_for_status(status_code))
    message = str(section.get("message") or HTTPStatus(status_code).phrase)
    details = section.get("details")

    if code == ErrorCode.SCHEMA_UNAVAILABLE:
        return SchemaUnavailableError(message, details=details)
    error_cls = _ERRORS_BY_STATUS.get(status_code)
    if error_cls is ValidationError:
        return ValidationError(message, code=code, details=details)
    if error_cls is not None:
        return error_cls(code=code, message=message, status_code=status_code, details=details)
    return ApplicationError(code=code, message=message, status_code=status_code, details=details)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the FastAPI app."""

    app.add_exception_handler(
        ApplicationError,
        cast(ExceptionHandlerCallable, application_error_handler),
    )
    app.add_exception_handler(
        RequestValidationError,
        cast(ExceptionHandlerCallable, request_validation_exception_handler),
    )
    app.add_exception_handler(
        StarletteHTTPException,
        cast(ExceptionHandlerCallable, http_exception_handler),
    )
    app.add_exception_handler(
        Exception,
        cast(ExceptionHandlerCallable, unexpected_exception_handler),
    )


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    if isinstance(exc, SchemaUnavailableError):
        logger.error(
            "Data store schema is missing a required relation",
            extra={"http_path": request.url.path, "details": exc.details},
        )
    return error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    details = _format_validation_errors(exc)
    return error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed.",
        details=details or None,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, Mapping):
        code = _coerce_code(detail.get("code"))
        message = str(detail.get("message") or HTTPStatus(exc.status_code).phrase)
        details = detail.get("details")
    else:
        code = _default_code_for_status(exc.status_code)
        message = str(detail or HTTPStatus(exc.status_code).phrase)
        details = None

    return error_response(
        status_code=exc.status_code,
        code=code,
        message=message,
        details=details,
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception during request",
        exc_info=(exc.__class__, exc, exc.__traceback__),
    )
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message="Internal server error. Please try again later.",
    )


def error_response(
    *,
    status_code: int,
    code: ErrorCode | str,
    message: str,
    details: object | None = None,
) -> JSONResponse:
    """Return JSONResponse adhering to the public error contract."""
    body = build_error_payload(code=code, message=message, details=details)
    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)


def build_error_payload(
    *,
    code: ErrorCode | str,
    message: str,
    details: object | None = None,
) -> dict[str, dict[str, object]]:
    error_section: dict[str, object] = {
        "code": _coerce_code(code),
        "message": message,
    }
    if details is not None:
        error_section["details"] = details
    return {"error": error_section}


def _format_validation_errors(exc: RequestValidationError) -> dict[str, str]:
    formatted: dict[str, str] = {}
    for error in exc.errors():
        field = _format_error_location(error.get("loc") or ())
        message = error.get("msg", "Invalid value")
        if field in formatted:
            formatted[field] = f"{formatted[field]}; {message}"
        else:
            formatted[field] = message
    return formatted


def _format_error_location(location: Sequence[object]) -> str:
    filtered = [str(part) for part in location if part not in {"body", "query", "path"}]
    if not filtered:
        filtered = [str(part) for part in location]
    return ".".join(filtered) if filtered else "_schema"


def _default_code_for_status(status_code: int) -> str:
    mapping: dict[int, ErrorCode] = {
        status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
        status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTH_FAILED,
        status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
        status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
        status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
        status.HTTP_409_CONFLICT: ErrorCode.CONFLICT,
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ErrorCode.PAYLOAD_TOO_LARGE,
        status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorCode.VALIDATION_ERROR,
        status.HTTP_500_INTERNAL_SERVER_ERROR: ErrorCode.INTERNAL_ERROR,
        status.HTTP_503_SERVICE_UNAVAILABLE: ErrorCode.SERVICE_UNAVAILABLE,
    }
    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)


def _coerce_code(code: ErrorCode | str | None) -> str:
    if code is None:
        return ErrorCode.INTERNAL_ERROR
    return str(code)


__all__ = [
    "ApplicationError",
    "ConflictError",
    "ErrorCode",
    "NotFoundError",
    "PermissionDeniedError",
    "SchemaUnavailableError",
    "ValidationError",
    "application_error_handler",
    "build_error_payload",
    "error_from_payload",
    "error_response",
    "http_exception_handler",
    "register_exception_handlers",
    "request_validation_exception_handler",
    "unexpected_exception_handler",
]
