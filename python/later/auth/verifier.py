"""Supabase JWT verification.

The search API runs every backend call under the caller's own access token,
so the verifier only has to establish who the caller is: signature via the
project JWKS, exp (60s leeway), iss, aud, and a UUID sub.

Test verifiers live in tests/support/mock_verifier.py.
"""

import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from later.errors import ApiError, ApiErrorCode
from later.logging import get_logger

logger = get_logger(__name__)

CLOCK_SKEW_SECONDS = 60
ALLOWED_ALGORITHMS = ["RS256", "ES256"]

# Most specific first: ExpiredSignatureError etc. subclass InvalidTokenError
_DECODE_FAILURES: tuple[tuple[type[InvalidTokenError], str, str], ...] = (
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> dict[str, Any]:
        """Return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token rejected.
            ApiError(E_AUTH_UNAVAILABLE): JWKS unreachable.
        """
        ...


def unauthenticated(reason: str, message: str) -> ApiError:
    logger.warning("auth_failure", reason=reason)
    return ApiError(ApiErrorCode.E_UNAUTHENTICATED, message)


def check_subject(payload: dict[str, Any]) -> dict[str, Any]:
    """Require a UUID `sub` claim (the Supabase user id)."""
    sub = payload.get("sub")
    if not sub:
        raise unauthenticated("missing_sub", "Invalid token: missing sub")
    try:
        UUID(str(sub))
    except ValueError as e:
        raise unauthenticated("invalid_sub", "Invalid token: sub is not a valid UUID") from e
    return payload


class SupabaseJwksVerifier:
    """Verifies Supabase access tokens against the project's JWKS.

    Keys are cached by PyJWKClient. On an unknown kid the client is rebuilt
    once to pick up rotated keys.
    """

    def __init__(self, jwks_url: str, issuer: str, audiences: list[str], cache_ttl: int = 3600):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl
        self._client: PyJWKClient | None = None
        self._lock = threading.Lock()

    def _jwks_client(self, refresh: bool = False) -> PyJWKClient:
        with self._lock:
            if self._client is None or refresh:
                self._client = PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)
            return self._client

    def _signing_key(self, token: str) -> Any:
        try:
            return self._jwks_client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" not in str(e) and "kid" not in str(e).lower():
                raise
        try:
            return self._jwks_client(refresh=True).get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            raise unauthenticated("kid_not_found", "Invalid token: signing key not found") from e

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self._signing_key(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALLOWED_ALGORITHMS,
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except InvalidTokenError as e:
            for error_type, reason, message in _DECODE_FAILURES:
                if isinstance(e, error_type):
                    raise unauthenticated(reason, message) from e
            raise

        return check_subject(payload)
