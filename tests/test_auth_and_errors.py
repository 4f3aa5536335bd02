import pytest
from httpx import AsyncClient, ASGITransport

from app.database.supabase_client import get_supabase
from app.main import app
from app.core.exceptions import Unauthorized
from app.modules.auth.service import AuthService
from tests.helpers import API, auth_headers


def test_token_resolves_to_user(supabase):
    user = AuthService(supabase).get_current_user("token-alice")
    assert user["id"] == "alice"
    assert user["email"] == "alice@example.com"


def test_bad_token_is_unauthorized(supabase):
    with pytest.raises(Unauthorized) as exc:
        AuthService(supabase).get_current_user("garbage")
    assert exc.value.detail == "Invalid or expired token"


@pytest.mark.asyncio
async def test_me(client):
    response = await client.get(f"{API}/auth/me", headers=auth_headers("bob"))
    assert response.status_code == 200
    assert response.json()["id"] == "bob"


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer garbage"}])
async def test_missing_or_bad_token_is_401(client, group_id, headers):
    response = await client.get(f"{API}/groups/{group_id}/polls", headers=headers)
    assert response.status_code == 401
    assert set(response.json()) == {"error"}


@pytest.mark.asyncio
async def test_forbidden_is_checked_before_argument_errors(client, group_id):
    response = await client.post(
        f"{API}/groups/{group_id}/todos",
        json={"title": "", "items": []},
        headers=auth_headers("carol"),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unavailable_maps_to_500(client, supabase, group_id):
    supabase.fail_on("group_polls", "select")
    response = await client.get(f"{API}/groups/{group_id}/polls", headers=auth_headers("alice"))
    assert response.status_code == 500
    assert response.json() == {"error": "Unable to load polls."}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get(f"{API}/nowhere")
    assert response.status_code == 404
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_unexpected_error_hides_details(client):
    def broken_store():
        raise RuntimeError("connection to db.internal:5432 refused")

    app.dependency_overrides[get_supabase] = broken_store
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        response = await http.get(f"{API}/groups", headers=auth_headers("bob"))
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
