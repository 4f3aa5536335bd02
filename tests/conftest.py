"""
Test configuration and fixtures.

Provides:
- An in-memory Supabase stand-in wired into the app's dependencies
- A seeded group (alice owns it, bob is a member, carol is an outsider)
- HTTPX AsyncClient against the ASGI app
"""
import pytest
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.database.supabase_client import get_supabase, get_auth_supabase
from app.modules.auth.service import clear_auth_cache
from tests.fakes import FakeSupabase, FakeEventBus
from tests.helpers import make_group


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def group_id(supabase) -> str:
    return make_group(supabase)


@pytest.fixture
def event_bus() -> FakeEventBus:
    return FakeEventBus()


@pytest.fixture
async def client(supabase):
    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_auth_supabase] = lambda: supabase

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()
