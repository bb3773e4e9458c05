"""FastAPI application factory.

Middleware runs in reverse order of registration. AuthMiddleware is added in
create_app; RequestIDMiddleware is added afterwards by
add_request_id_middleware so it is outermost and every response, including
auth failures, carries X-Request-ID.

Search backend lifecycle:
- One httpx.AsyncClient is created at startup and closed at shutdown
- Unless a backend is injected (tests, local fake), a PostgrestSearchBackend
  is built over that client from SUPABASE_URL / SUPABASE_ANON_KEY
- Each request derives a per-user copy carrying the caller's token
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from later.api.routes import create_api_router
from later.auth.middleware import AuthMiddleware
from later.auth.verifier import SupabaseJwksVerifier, TokenVerifier
from later.config import Environment, get_settings
from later.errors import ApiError
from later.logging import configure_logging, get_logger
from later.middleware.request_id import RequestIDMiddleware
from later.responses import (
    api_error_handler,
    http_exception_handler,
    search_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from later.services.search import PostgrestSearchBackend, SearchError, TextSearchBackend

logger = get_logger(__name__)


def create_token_verifier() -> SupabaseJwksVerifier:
    """Build the JWKS verifier from settings (same in every environment)."""
    settings = get_settings()
    return SupabaseJwksVerifier(
        jwks_url=settings.supabase_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.search_backend_timeout_s, connect=5.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )

    if app.state.search_backend is None and settings.rest_url and settings.supabase_anon_key:
        app.state.search_backend = PostgrestSearchBackend(
            app.state.httpx_client,
            rest_url=settings.rest_url,
            api_key=settings.supabase_anon_key,
            text_search_config=settings.search_text_search_config,
            timeout_s=settings.search_backend_timeout_s,
        )
        logger.info(
            "search_backend_initialized",
            backend="postgrest",
            text_search_config=settings.search_text_search_config,
        )

    yield

    await app.state.httpx_client.aclose()
    logger.info("httpx_client_closed")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
    search_backend: TextSearchBackend | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: Skip AuthMiddleware (tests that set viewers directly).
        token_verifier: Custom verifier (tests).
        search_backend: Injected backend; PostgREST is used when None.
    """
    settings = get_settings()
    configure_logging(json_format=settings.later_env in (Environment.STAGING, Environment.PROD))

    app = FastAPI(
        title="Later Search API",
        description="Unified search over notes, todo lists and lists in a space",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.search_backend = search_backend

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(SearchError, search_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(AuthMiddleware, verifier=token_verifier or create_token_verifier())
        logger.info("auth_middleware_enabled", env=settings.later_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add RequestIDMiddleware. Call after every other middleware is added."""
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
