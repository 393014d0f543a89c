"""Owner profile read/update at /api/user."""
import pytest
from httpx import AsyncClient

from tests.conftest import auth_headers, create_user

USER_URL = "/api/user"


@pytest.fixture
def owner(db):
    return create_user(db, email="alice@example.com", username="alice")


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    assert (await client.get(USER_URL)).status_code == 401
    assert (await client.patch(USER_URL, json={"pageTitle": "x"})).status_code == 401


@pytest.mark.asyncio
async def test_read_own_user(client: AsyncClient, owner):
    resp = await client.get(USER_URL, headers=auth_headers(owner))

    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["id"] == str(owner.id)
    assert user["email"] == "alice@example.com"
    assert user["username"] == "alice"
    assert user["pageTitle"] is None


@pytest.mark.asyncio
async def test_update_page_header_shows_on_profile(client: AsyncClient, owner):
    resp = await client.patch(
        USER_URL,
        json={"pageTitle": "Alice's links", "pageDesc": "Things I make", "theme": "YELLOW"},
        headers=auth_headers(owner),
    )

    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["pageTitle"] == "Alice's links"
    assert user["pageDesc"] == "Things I make"
    assert user["name"] == "Test User"
    assert "theme" not in user

    profile = await client.get("/alice")
    assert profile.json()["pageTitle"] == "Alice's links"
    assert profile.json()["pageDesc"] == "Things I make"


@pytest.mark.asyncio
async def test_partial_update_and_clearing(client: AsyncClient, owner):
    headers = auth_headers(owner)
    await client.patch(USER_URL, json={"pageTitle": "Title", "pageDesc": "Desc"}, headers=headers)

    resp = await client.patch(USER_URL, json={"pageDesc": None}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["user"]["pageTitle"] == "Title"
    assert resp.json()["user"]["pageDesc"] is None


@pytest.mark.asyncio
async def test_no_editable_fields_is_rejected(client: AsyncClient, owner):
    resp = await client.patch(USER_URL, json={"theme": "YELLOW", "email": "x@example.com"}, headers=auth_headers(owner))

    assert resp.status_code == 400
    assert resp.json() == {"error": "No valid fields to update"}


@pytest.mark.asyncio
async def test_overlong_title_is_rejected(client: AsyncClient, owner):
    resp = await client.patch(USER_URL, json={"pageTitle": "x" * 101}, headers=auth_headers(owner))

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"
