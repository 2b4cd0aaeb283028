"""Router aggregations for public API endpoints."""

from fastapi import APIRouter

from groupwatch.api.routes import chat, groups, health, picks
from groupwatch.core.config import settings

# Health router (no prefix)
root_router = APIRouter()
root_router.include_router(health.router, tags=["health"])

# API routers under the configured prefix
api_router = APIRouter(prefix=settings.api_v1_prefix)
api_router.include_router(groups.router)
api_router.include_router(picks.router)
api_router.include_router(chat.router)

__all__ = ["api_router", "root_router"]
