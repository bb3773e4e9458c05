"""HTTP tests for GET /search and the error envelope.

The app runs against FakeSearchBackend with tokens signed by MockJwtVerifier.
"""

from later.services.search import BackendErrorClass, SearchBackendError
from tests.helpers import (
    OTHER_SPACE_ID,
    SPACE_ID,
    T1,
    T2,
    auth_headers,
    list_item_row,
    list_row,
    note_row,
    todo_item_row,
    todo_list_row,
)


def _search(client, **params):
    params.setdefault("space_id", SPACE_ID)
    return client.get("/search", params=params, headers=auth_headers())


class TestHealth:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"data": {"status": "ok"}}


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/search", params={"q": "milk", "space_id": SPACE_ID})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"

    def test_malformed_header(self, client):
        response = client.get(
            "/search",
            params={"q": "milk", "space_id": SPACE_ID},
            headers={"Authorization": "Basic abc"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid authorization header format"

    def test_expired_token(self, client):
        response = client.get(
            "/search",
            params={"q": "milk", "space_id": SPACE_ID},
            headers=auth_headers(expires_in=-3600),
        )
        assert response.status_code == 401

    def test_request_id_echoed(self, client):
        response = client.get("/search", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["error"]["request_id"] == "req-123"


class TestSearchEndpoint:
    def test_mixed_results_by_recency(self, client, backend):
        groceries = todo_list_row("Groceries", updated_at=T2)
        backend.add_rows("notes", [note_row("Buy milk", updated_at=T1, tags=["shop"])])
        backend.add_rows("todo_lists", [groceries])
        backend.add_rows("todo_items", [todo_item_row("milk", groceries)])

        response = _search(client, q="milk")

        assert response.status_code == 200
        body = response.json()
        first, second = body["results"]
        assert first["type"] == "todoItem"
        assert first["type_label"] == "Todo Item"
        assert first["is_child_item"] is True
        assert first["parent_name"] == "Groceries"
        assert first["parent_id"] == groceries["id"]
        assert second["type"] == "note"
        assert second["title"] == "Buy milk"
        assert second["tags"] == ["shop"]
        assert second["content"]["title"] == "Buy milk"
        assert body["page"] == {"offset": 0, "limit": 50, "has_more": False, "next_offset": None}

    def test_scoped_to_space(self, client, backend):
        backend.add_rows(
            "notes",
            [note_row("milk here"), note_row("milk there", space_id=OTHER_SPACE_ID)],
        )

        body = _search(client, q="milk").json()

        assert [r["title"] for r in body["results"]] == ["milk here"]

    def test_blank_phrase_returns_empty_page(self, client, backend):
        backend.add_rows("notes", [note_row("milk")])

        response = _search(client, q="   ")

        assert response.status_code == 200
        assert response.json()["results"] == []
        assert backend.calls == []

    def test_type_and_tag_filters(self, client, backend):
        shopping = list_row("Shopping")
        backend.add_rows("notes", [note_row("milk", tags=["shop", "home"]), note_row("milk 2")])
        backend.add_rows("list_items", [list_item_row("milk", shopping)])

        body = _search(client, q="milk", types="note", tags="shop,home").json()

        assert len(body["results"]) == 1
        assert body["results"][0]["tags"] == ["shop", "home"]
        assert [c.table for c in backend.calls] == ["notes"]

    def test_empty_types_searches_nothing(self, client, backend):
        backend.add_rows("notes", [note_row("milk")])

        body = _search(client, q="milk", types="").json()

        assert body["results"] == []
        assert backend.calls == []

    def test_pagination(self, client, backend):
        backend.add_rows("notes", [note_row(f"milk {i}") for i in range(3)])

        body = _search(client, q="milk", limit=2).json()

        assert len(body["results"]) == 2
        assert body["page"]["has_more"] is True
        assert body["page"]["next_offset"] == 2


class TestSearchErrors:
    def test_missing_space(self, client):
        response = client.get("/search", params={"q": "milk"}, headers=auth_headers())
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_SCOPE_REQUIRED"

    def test_query_too_long(self, client, backend):
        response = _search(client, q="x" * 501)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_QUERY_TOO_LONG"
        assert backend.calls == []

    def test_unknown_type(self, client):
        response = _search(client, q="milk", types="note,media")
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "E_INVALID_REQUEST"
        assert "media" in error["message"]

    def test_limit_out_of_range(self, client):
        response = _search(client, q="milk", limit=1000)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_non_integer_limit(self, client):
        response = _search(client, q="milk", limit="many")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_backend_failure(self, client, backend):
        backend.fail_table("lists")

        response = _search(client, q="milk")

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "E_SEARCH_UNAVAILABLE"
        assert error["message"] == "Search failed for List"

    def test_backend_permission_denied(self, client, backend):
        backend.fail_table(
            "notes", SearchBackendError(BackendErrorClass.PERMISSION_DENIED, "denied")
        )

        response = _search(client, q="milk")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "E_FORBIDDEN"

    def test_backend_timeout(self, client, backend):
        backend.fail_table("notes", SearchBackendError(BackendErrorClass.TIMEOUT, "slow"))

        response = _search(client, q="milk")

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "E_SEARCH_TIMEOUT"
