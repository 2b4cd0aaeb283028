import logging
import uuid
from typing import Annotated

import pytest
from fastapi import Depends, FastAPI, status
from httpx import ASGITransport, AsyncClient

from groupwatch.core.logging import bind_user_id, get_request_id
from groupwatch.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_request_size_limit_rejects_large_payload() -> None:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=64)

    @app.post("/echo")
    async def echo_endpoint() -> dict[str, str]:
        return {"status": "ok"}

    async with _client(app) as client:
        response = await client.post(
            "/echo", content="x" * 128, headers={"content-type": "text/plain"}
        )

    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    payload = response.json()
    assert payload["error"]["code"] == "PAYLOAD_TOO_LARGE"
    assert payload["error"]["message"].startswith("Request body exceeds")


@pytest.mark.asyncio
async def test_request_size_limit_allows_small_payload() -> None:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=256)

    @app.post("/echo")
    async def echo_endpoint() -> dict[str, str]:
        return {"status": "ok"}

    async with _client(app) as client:
        response = await client.post("/echo", json={"message": "ok"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_request_size_limit_requires_positive_bound() -> None:
    with pytest.raises(ValueError):
        RequestSizeLimitMiddleware(FastAPI(), max_request_bytes=0)


@pytest.mark.asyncio
async def test_security_headers_middleware_injects_headers() -> None:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=True)

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "ok"}

    async with _client(app) as client:
        response = await client.get("/ping")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Strict-Transport-Security" in response.headers


@pytest.mark.asyncio
async def test_request_id_is_bound_for_the_request() -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/whoami")
    async def whoami() -> dict[str, str | None]:
        return {"request_id": get_request_id()}

    async with _client(app) as client:
        response = await client.get("/whoami", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    assert response.json() == {"request_id": "req-42"}


@pytest.mark.asyncio
async def test_access_log_records_status(caplog: pytest.LogCaptureFixture) -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/teapot", status_code=418)
    async def teapot() -> dict[str, str]:
        return {"status": "short and stout"}

    with caplog.at_level(logging.INFO, logger="groupwatch.access"):
        async with _client(app) as client:
            response = await client.get("/teapot")

    [record] = [record for record in caplog.records if record.name == "groupwatch.access"]
    assert record.status_code == 418
    assert record.http_path == "/teapot"
    assert record.http_method == "GET"
    assert record.user_id is None
    assert record.group_id is None
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_access_log_carries_caller_group_and_route(
    caplog: pytest.LogCaptureFixture,
) -> None:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    async def _caller() -> str:
        bind_user_id("user-7")
        return "user-7"

    @app.get("/groups/{group_id}/ping")
    async def ping(group_id: str, caller: Annotated[str, Depends(_caller)]) -> dict[str, str]:
        return {"group_id": group_id, "caller": caller}

    group_id = str(uuid.uuid4())
    with caplog.at_level(logging.INFO, logger="groupwatch.access"):
        async with _client(app) as client:
            await client.get(f"/groups/{group_id}/ping")

    [record] = [record for record in caplog.records if record.name == "groupwatch.access"]
    assert record.user_id == "user-7"
    assert record.group_id == group_id
    assert record.route == "/groups/{group_id}/ping"


@pytest.mark.asyncio
async def test_api_responses_are_not_cached() -> None:
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, private_prefix="/api")

    @app.get("/api/groups")
    async def groups() -> dict[str, list[str]]:
        return {"data": []}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    async with _client(app) as client:
        private = await client.get("/api/groups")
        public = await client.get("/health")

    assert private.headers["Cache-Control"] == "no-store"
    assert "Cache-Control" not in public.headers
    assert "Strict-Transport-Security" not in private.headers


@pytest.mark.asyncio
async def test_request_size_limit_skips_bodyless_methods() -> None:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_request_bytes=1)

    @app.get("/groups")
    async def groups() -> dict[str, list[str]]:
        return {"data": []}

    async with _client(app) as client:
        response = await client.get("/groups")

    assert response.status_code == status.HTTP_200_OK
