"""Test helpers: token minting and search fixture rows.

Row builders produce PostgREST-shaped JSON, including the embedded parent
object that the child adapters' inner join returns.
"""

import time
from uuid import UUID, uuid4

import jwt

from tests.support.mock_verifier import MockJwtVerifier

DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600

SPACE_ID = "space-1"
OTHER_SPACE_ID = "space-2"
OWNER_ID = "5b1f7c1e-2f7a-4c0e-9d4b-0f6d8c7a1e23"

T0 = "2025-01-01T09:00:00+00:00"
T1 = "2025-01-02T09:00:00+00:00"
T2 = "2025-01-03T09:00:00+00:00"
T3 = "2025-01-04T09:00:00+00:00"


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def auth_headers(user_id: UUID | str = OWNER_ID, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_test_token(user_id, **kwargs)}"}


def note_row(
    title: str,
    updated_at: str = T1,
    content: str | None = None,
    tags: list[str] | None = None,
    space_id: str = SPACE_ID,
    user_id: str = OWNER_ID,
    id: str | None = None,
) -> dict:
    return {
        "id": id or str(uuid4()),
        "title": title,
        "content": content,
        "space_id": space_id,
        "user_id": user_id,
        "tags": tags or [],
        "created_at": T0,
        "updated_at": updated_at,
        "sort_order": 0,
    }


def todo_list_row(
    name: str,
    updated_at: str = T1,
    description: str | None = None,
    space_id: str = SPACE_ID,
    user_id: str = OWNER_ID,
    id: str | None = None,
) -> dict:
    return {
        "id": id or str(uuid4()),
        "space_id": space_id,
        "user_id": user_id,
        "name": name,
        "description": description,
        "total_item_count": 0,
        "completed_item_count": 0,
        "created_at": T0,
        "updated_at": updated_at,
        "sort_order": 0,
    }


def list_row(
    name: str,
    updated_at: str = T1,
    space_id: str = SPACE_ID,
    user_id: str = OWNER_ID,
    id: str | None = None,
) -> dict:
    return {
        "id": id or str(uuid4()),
        "space_id": space_id,
        "user_id": user_id,
        "name": name,
        "icon": None,
        "style": "checkboxes",
        "total_item_count": 0,
        "checked_item_count": 0,
        "created_at": T0,
        "updated_at": updated_at,
        "sort_order": 0,
    }


def todo_item_row(title: str, parent: dict, description: str | None = None, tags: list[str] | None = None) -> dict:
    """Todo item with its todo_lists parent embedded as the join returns it."""
    return {
        "id": str(uuid4()),
        "todo_list_id": parent["id"],
        "title": title,
        "description": description,
        "is_completed": False,
        "due_date": None,
        "priority": "medium",
        "tags": tags or [],
        "sort_order": 0,
        "todo_lists": _embedded_parent(parent),
    }


def list_item_row(title: str, parent: dict, notes: str | None = None) -> dict:
    return {
        "id": str(uuid4()),
        "list_id": parent["id"],
        "title": title,
        "notes": notes,
        "is_checked": False,
        "sort_order": 0,
        "lists": _embedded_parent(parent),
    }


def _embedded_parent(parent: dict) -> dict:
    return {
        "id": parent["id"],
        "name": parent["name"],
        "space_id": parent["space_id"],
        "user_id": parent["user_id"],
        "updated_at": parent["updated_at"],
    }
