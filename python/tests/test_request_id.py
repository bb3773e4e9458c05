"""Tests for X-Request-ID middleware.

Tests cover:
- Request ID generation when missing
- Request ID preservation and UUID normalization
- Request ID replacement when invalid
- Request ID presence on auth and search failures
"""

from uuid import UUID

import pytest

from later.middleware.request_id import is_valid_request_id, resolve_request_id
from tests.helpers import SPACE_ID, auth_headers


def _search(client, request_id: str | None = None, **params):
    headers = auth_headers()
    if request_id is not None:
        headers["X-Request-ID"] = request_id
    params.setdefault("q", "milk")
    params.setdefault("space_id", SPACE_ID)
    return client.get("/search", params=params, headers=headers)


class TestRequestIdMiddleware:
    def test_request_id_generated_when_missing(self, client):
        response = _search(client)

        assert response.status_code == 200
        UUID(response.headers["X-Request-ID"])

    def test_request_id_preserved_when_valid(self, client):
        response = _search(client, "abc_def-123")
        assert response.headers["X-Request-ID"] == "abc_def-123"

    def test_request_id_uuid_normalized_to_lowercase(self, client):
        response = _search(client, "550E8400-E29B-41D4-A716-446655440000")
        assert response.headers["X-Request-ID"] == "550e8400-e29b-41d4-a716-446655440000"

    @pytest.mark.parametrize("invalid_id", ["bad id with spaces", "a" * 200])
    def test_request_id_replaced_when_invalid(self, client, invalid_id):
        response = _search(client, invalid_id)

        new_id = response.headers["X-Request-ID"]
        assert new_id != invalid_id
        UUID(new_id)

    def test_request_id_present_on_auth_failure(self, client):
        response = client.get("/search", params={"q": "milk", "space_id": SPACE_ID})

        assert response.status_code == 401
        assert "X-Request-ID" in response.headers

    def test_search_error_includes_request_id_in_body(self, client):
        response = _search(client, space_id="")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["request_id"] == response.headers["X-Request-ID"]


class TestRequestIdValidation:
    @pytest.mark.parametrize(
        "value",
        ["request.id.with.dots", "request_id_with_underscores", "request-id", "a" * 128],
    )
    def test_valid_tokens(self, value):
        assert is_valid_request_id(value)
        assert resolve_request_id(value) == value

    @pytest.mark.parametrize("value", ["", "a" * 129, "semi;colon", "ünïcode"])
    def test_invalid_tokens(self, value):
        assert not is_valid_request_id(value)

    def test_missing_generates_uuid(self):
        UUID(resolve_request_id(None))
