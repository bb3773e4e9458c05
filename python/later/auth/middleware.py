"""Bearer-token authentication middleware and viewer dependency."""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from later.auth.verifier import TokenVerifier
from later.errors import ApiError, ApiErrorCode
from later.logging import get_logger
from later.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"

PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Authenticated caller.

    Attributes:
        user_id: Supabase user id (JWT sub), used as the owner filter
        access_token: The verified token, forwarded to PostgREST so
            row-level security applies to search queries
    """

    user_id: str
    access_token: str


class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects non-public requests without a valid bearer token.

    On success a Viewer is attached to request.state.viewer.
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next):
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        token = _extract_bearer_token(request.headers.get(AUTHORIZATION_HEADER))
        if token is None:
            return _unauthenticated(request, "Authentication required")
        if token == "":
            return _unauthenticated(request, "Invalid authorization header format")

        try:
            payload = self.verifier.verify(token)
        except ApiError as e:
            return JSONResponse(status_code=e.status_code, content=error_response(e.code, e.message))

        request.state.viewer = Viewer(user_id=str(UUID(str(payload["sub"]))), access_token=token)
        return await call_next(request)


def _extract_bearer_token(header: str | None) -> str | None:
    """Return the token, "" for a malformed header, or None when absent."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def _unauthenticated(request: Request, message: str) -> JSONResponse:
    logger.warning("auth_failure", reason=message.lower().replace(" ", "_"))
    return JSONResponse(
        status_code=401,
        content=error_response(ApiErrorCode.E_UNAUTHENTICATED, message),
    )


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency returning the authenticated viewer."""
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer
