from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import Forbidden, InvalidArgument
from app.modules.statuses.reaper import purge_expired_statuses
from app.modules.statuses.schemas import StatusTimeout, expiration_for
from app.modules.statuses.service import StatusService
from tests.helpers import API, auth_headers

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(supabase):
    return StatusService(supabase)


def test_expiration_for_each_timeout():
    assert expiration_for(StatusTimeout.NEVER, NOW) is None
    assert expiration_for(StatusTimeout.THIRTY_MINUTES, NOW) == NOW + timedelta(minutes=30)
    assert expiration_for(StatusTimeout.ONE_DAY, NOW) == NOW + timedelta(hours=24)


def test_put_replaces_previous_status(service, supabase, group_id):
    service.put_status(group_id, "alice", "Cooking", emoji="🍝", now=NOW)
    service.put_status(group_id, "alice", "Out for a run", now=NOW + timedelta(minutes=5))

    rows = [r for r in supabase.rows("group_statuses") if r["user_id"] == "alice"]
    assert len(rows) == 1
    statuses = service.list_statuses(group_id, "bob", now=NOW + timedelta(minutes=6))
    assert [s.message for s in statuses] == ["Out for a run"]
    assert statuses[0].emoji is None


def test_message_is_trimmed_and_required(service, group_id):
    status = service.put_status(group_id, "bob", "  Studying  ", emoji="  ", now=NOW)
    assert status.message == "Studying"
    assert status.emoji is None
    with pytest.raises(InvalidArgument) as exc:
        service.put_status(group_id, "bob", "   ", now=NOW)
    assert exc.value.detail == "Status text is required."


def test_membership_is_checked_before_validation(service, group_id):
    with pytest.raises(Forbidden):
        service.put_status(group_id, "carol", "", now=NOW)


def test_expired_statuses_are_hidden_on_read(service, group_id):
    service.put_status(group_id, "alice", "Napping", expires_in=StatusTimeout.THIRTY_MINUTES, now=NOW)
    service.put_status(group_id, "bob", "Around", now=NOW)

    before = service.list_statuses(group_id, "alice", now=NOW + timedelta(minutes=29))
    after = service.list_statuses(group_id, "alice", now=NOW + timedelta(minutes=30))

    assert {s.user_id for s in before} == {"alice", "bob"}
    assert [s.user_id for s in after] == ["bob"]


def test_newest_update_first(service, group_id):
    service.put_status(group_id, "alice", "first", now=NOW)
    service.put_status(group_id, "bob", "second", now=NOW + timedelta(minutes=1))
    statuses = service.list_statuses(group_id, "alice", now=NOW + timedelta(minutes=2))
    assert [s.user_id for s in statuses] == ["bob", "alice"]


def test_purge_only_removes_expired_rows(service, supabase, group_id):
    service.put_status(group_id, "alice", "Napping", expires_in=StatusTimeout.ONE_HOUR, now=NOW)
    service.put_status(group_id, "bob", "Around", now=NOW)

    assert service.purge_expired(now=NOW + timedelta(minutes=30)) == 0
    assert service.purge_expired(now=NOW + timedelta(hours=2)) == 1
    assert [r["user_id"] for r in supabase.rows("group_statuses")] == ["bob"]


@pytest.mark.asyncio
async def test_reaper_swallows_store_errors(supabase, monkeypatch):
    monkeypatch.setattr("app.modules.statuses.reaper.get_supabase", lambda: supabase)
    supabase.fail_on("group_statuses", "delete")
    assert await purge_expired_statuses() == 0


@pytest.mark.asyncio
async def test_status_routes(client, group_id):
    response = await client.post(
        f"{API}/groups/{group_id}/statuses",
        json={"message": "Home", "emoji": "🏡", "expires_in": "4h"},
        headers=auth_headers("alice"),
    )
    assert response.status_code == 200
    body = response.json()["status"]
    assert body["message"] == "Home"
    assert body["expires_at"] is not None

    response = await client.get(f"{API}/groups/{group_id}/statuses", headers=auth_headers("bob"))
    assert response.status_code == 200
    assert [s["user_id"] for s in response.json()["statuses"]] == ["alice"]


@pytest.mark.asyncio
async def test_status_routes_reject_outsiders_and_bad_timeouts(client, group_id):
    response = await client.get(f"{API}/groups/{group_id}/statuses", headers=auth_headers("carol"))
    assert response.status_code == 403
    assert response.json() == {"error": "You must be a member of this group"}

    response = await client.post(
        f"{API}/groups/{group_id}/statuses",
        json={"message": "Home", "expires_in": "2d"},
        headers=auth_headers("alice"),
    )
    assert response.status_code == 400
    assert "error" in response.json()
