"""API route definitions.

Routers are assembled by a factory so importing route modules never loads
settings.
"""

from fastapi import APIRouter

from later.api.routes.health import router as health_router
from later.api.routes.search import router as search_router


def create_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(search_router, tags=["search"])
    return api_router


__all__ = ["create_api_router"]
