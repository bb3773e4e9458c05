"""Pytest configuration and fixtures for Later tests.

No database is needed: search tests run against FakeSearchBackend or a
respx-mocked PostgREST. Auth tests use tokens signed by MockJwtVerifier.
"""

import os

# Settings are read at app creation; set test values before any import of later.*
os.environ.setdefault("LATER_ENV", "test")
os.environ.setdefault("SUPABASE_JWKS_URL", "http://localhost:54321/auth/v1/.well-known/jwks.json")
os.environ.setdefault("SUPABASE_ISSUER", "test-issuer")
os.environ.setdefault("SUPABASE_AUDIENCES", "test-audience")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from later.app import add_request_id_middleware, create_app
from later.config import clear_settings_cache, get_settings
from later.services.search import FakeSearchBackend, SearchQuery, create_search_service
from tests.helpers import OWNER_ID, SPACE_ID
from tests.support.mock_verifier import MockJwtVerifier


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def backend() -> FakeSearchBackend:
    return FakeSearchBackend()


@pytest.fixture
def service(backend: FakeSearchBackend):
    return create_search_service(backend, lambda: OWNER_ID, get_settings())


@pytest.fixture
def make_query():
    def _make(phrase: str = "milk", **kwargs) -> SearchQuery:
        kwargs.setdefault("space_id", SPACE_ID)
        return SearchQuery(phrase=phrase, **kwargs)

    return _make


@pytest.fixture
def app(backend: FakeSearchBackend):
    app = create_app(token_verifier=MockJwtVerifier(), search_backend=backend)
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
