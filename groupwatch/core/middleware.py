"""
HTTP middleware for the Group Watch API.

``RequestContextMiddleware`` is the outermost layer: it binds the request id,
lets the auth dependency record the caller on a shared ``RequestContext`` and
writes one access line per request with the matched route template and the
group the request addressed.
"""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from groupwatch.core.errors import ErrorCode, error_response
from groupwatch.core.logging import (
    RequestContext,
    bind_request_context,
    bind_request_id,
    reset_request_context,
    reset_request_id,
)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlate a request across log lines and emit its access record."""

    def __init__(self, app: ASGIApp, logger_name: str = "groupwatch.access") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(request_id=request.headers.get(REQUEST_ID_HEADER) or uuid4().hex)
        request.state.request_id = context.request_id
        id_token = bind_request_id(context.request_id)
        context_token = bind_request_context(context)
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                self._log_access(request, context, status.HTTP_500_INTERNAL_SERVER_ERROR, started)
                raise
            self._log_access(request, context, response.status_code, started)
        finally:
            reset_request_context(context_token)
            reset_request_id(id_token)

        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response

    def _log_access(
        self,
        request: Request,
        context: RequestContext,
        status_code: int,
        started: float,
    ) -> None:
        # the router fills these into the shared scope once a route matched
        route = request.scope.get("route")
        path_params = request.scope.get("path_params") or {}
        self.logger.info(
            "access",
            extra={
                "event": "access",
                "http_method": request.method,
                "http_path": request.url.path,
                "route": getattr(route, "path", None),
                "group_id": path_params.get("group_id"),
                "user_id": context.user_id,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Baseline response headers.

    Group data is private to its members, so responses under ``private_prefix``
    are marked ``no-store``. HSTS is opt-in for deployed environments.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        private_prefix: str | None = None,
        enable_hsts: bool = False,
    ) -> None:
        super().__init__(app)
        self.private_prefix = private_prefix
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        headers = response.headers
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "no-referrer")
        if self.private_prefix and request.url.path.startswith(self.private_prefix):
            headers.setdefault("Cache-Control", "no-store")
        if self.enable_hsts:
            headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Answer 413 for bodies over ``max_request_bytes``; messages and picks are small JSON."""

    def __init__(self, app: ASGIApp, max_request_bytes: int) -> None:
        if max_request_bytes <= 0:
            raise ValueError("max_request_bytes must be greater than zero.")
        super().__init__(app)
        self.max_request_bytes = max_request_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method in {"GET", "HEAD", "OPTIONS"}:
            return await call_next(request)

        declared = request.headers.get("content-length", "")
        too_large = declared.isdigit() and int(declared) > self.max_request_bytes
        if too_large or len(await request.body()) > self.max_request_bytes:
            return error_response(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                code=ErrorCode.PAYLOAD_TOO_LARGE,
                message=f"Request body exceeds {self.max_request_bytes} bytes.",
            )
        return await call_next(request)


__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]
