"""Tests for main application module."""

from __future__ import annotations

from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from groupwatch.main import app


def test_app_title() -> None:
    """Test that app has correct title."""
    assert "Group Watch" in app.title


def test_app_version() -> None:
    """Test that app has version."""
    assert hasattr(app, "version")
    assert app.version is not None


def test_app_has_exception_handlers() -> None:
    """Test that exception handlers are registered."""
    assert len(app.exception_handlers) > 0


def test_app_has_routers() -> None:
    """Test that API routers are included."""
    paths = app.openapi()["paths"]
    assert "/health" in paths
    assert "/api/groups" in paths
    assert "/api/groups/{group_id}/picks/{pick_id}/watched" in paths
    assert "/api/groups/{group_id}/messages/{message_id}/reactions" in paths


def test_metrics_route_is_registered_outside_the_schema() -> None:
    """Test that /metrics is served but hidden from OpenAPI."""
    routes = [route.path for route in app.routes if isinstance(route, APIRoute)]
    assert "/metrics" in routes
    assert "/metrics" not in app.openapi()["paths"]


def test_openapi_schema() -> None:
    """Test that OpenAPI schema is generated."""
    client = TestClient(app)
    response = client.get("/openapi.json")
    assert response.status_code == 200
    schema = response.json()
    assert "openapi" in schema
    assert "/api/groups/invites/{invite_id}/respond" in schema["paths"]
