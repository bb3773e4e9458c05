"""Test-only token verifier backed by a locally generated RSA keypair.

Checks the same claims as SupabaseJwksVerifier (exp, iss, aud, UUID sub)
so misconfigured test tokens fail the same way production tokens would.
Never imported by runtime code.
"""

import threading
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from later.auth.verifier import CLOCK_SKEW_SECONDS, check_subject, unauthenticated


class MockJwtVerifier:
    """Verifies RS256 tokens minted with get_private_key()."""

    _private_key: bytes | None = None
    _public_key: bytes | None = None
    _lock = threading.Lock()

    def __init__(self, issuer: str = "test-issuer", audiences: list[str] | None = None):
        self.issuer = issuer
        self.audiences = audiences or ["test-audience"]
        self._ensure_keypair()

    @classmethod
    def _ensure_keypair(cls) -> None:
        with cls._lock:
            if cls._private_key is not None:
                return
            key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
            cls._private_key = key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
            cls._public_key = key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )

    @classmethod
    def get_private_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._private_key is not None
        return cls._private_key

    def verify(self, token: str) -> dict[str, Any]:
        self._ensure_keypair()
        try:
            payload = jwt.decode(
                token,
                self._public_key,
                algorithms=["RS256"],
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except ExpiredSignatureError as e:
            raise unauthenticated("expired_token", "Token expired") from e
        except InvalidTokenError as e:
            raise unauthenticated("invalid_token", "Invalid token") from e
        return check_subject(payload)
