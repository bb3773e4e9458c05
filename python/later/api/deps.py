"""FastAPI dependencies for route handlers."""

from typing import Annotated

from fastapi import Depends, Request

from later.auth.middleware import Viewer, get_viewer
from later.config import get_settings
from later.errors import ApiError, ApiErrorCode
from later.services.search import (
    PostgrestSearchBackend,
    SearchService,
    TextSearchBackend,
    create_search_service,
)


def get_search_backend(request: Request) -> TextSearchBackend:
    """Return the shared search backend from app state."""
    backend = getattr(request.app.state, "search_backend", None)
    if backend is None:
        raise ApiError(ApiErrorCode.E_SEARCH_UNAVAILABLE, "Search backend not configured")
    return backend


def get_search_service(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    backend: Annotated[TextSearchBackend, Depends(get_search_backend)],
) -> SearchService:
    """Build a search service bound to the viewer.

    PostgREST calls are issued with the viewer's own token so row-level
    security applies; the viewer's id is the owner filter.
    """
    if isinstance(backend, PostgrestSearchBackend):
        backend = backend.with_access_token(viewer.access_token)
    return create_search_service(backend, lambda: viewer.user_id, get_settings())
