"""Authentication for the search API.

- SupabaseJwksVerifier: verifies Supabase access tokens
- AuthMiddleware: enforces bearer auth on non-public paths
- get_viewer: dependency returning the authenticated Viewer

Test-only verifiers are in tests/support/mock_verifier.py
"""

from later.auth.middleware import AuthMiddleware, Viewer, get_viewer
from later.auth.verifier import SupabaseJwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "SupabaseJwksVerifier",
    "TokenVerifier",
]
