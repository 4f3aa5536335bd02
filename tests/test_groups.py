import pytest

from app.core.exceptions import Forbidden, InvalidArgument, NotFound, Unavailable
from app.modules.groups.schemas import GroupCreate
from app.modules.groups.service import GroupService
from tests.helpers import API, auth_headers


@pytest.fixture
def service(supabase):
    return GroupService(supabase)


def roles(group):
    return {m.user_id: m.role for m in group.members}


class TestCreate:
    def test_creator_is_owner(self, service):
        group = service.create_group(
            GroupCreate(name=" Roommates ", icon="🏠", member_ids=["bob", "alice", "bob"]),
            "alice",
        )
        assert group.name == "Roommates"
        assert group.preset == "custom"
        assert roles(group) == {"alice": "owner", "bob": "member"}

    def test_name_and_icon_required(self, service):
        with pytest.raises(InvalidArgument) as exc:
            service.create_group(GroupCreate(name=" ", icon="🏠"), "alice")
        assert exc.value.detail == "Group name and icon are required."

    def test_member_failure_removes_group(self, service, supabase):
        supabase.fail_on("group_members", "upsert")
        with pytest.raises(Unavailable):
            service.create_group(GroupCreate(name="Roommates", icon="🏠"), "alice")
        assert supabase.rows("groups") == []


class TestMembership:
    def test_preview_for_outsider(self, service, group_id):
        preview, is_member = service.get_preview(group_id, "carol")
        assert preview.member_count == 2
        assert is_member is False
        _, is_member = service.get_preview(group_id, "bob")
        assert is_member is True

    def test_join_is_idempotent_and_keeps_owner(self, service, group_id):
        service.join_group(group_id, "carol")
        group = service.join_group(group_id, "alice")
        assert roles(group) == {"alice": "owner", "bob": "member", "carol": "member"}

    def test_join_records_inviter_only_when_member(self, service, group_id):
        service.join_group(group_id, "carol")
        service.join_group(group_id, "dave", invited_by="bob")
        service.join_group(group_id, "erin", invited_by="mallory")
        service.join_group(group_id, "frank", invited_by="frank")
        inviters = {m.user_id: m.invited_by for m in service.list_members(group_id)}
        assert inviters["carol"] is None
        assert inviters["dave"] == "bob"
        assert inviters["erin"] is None
        assert inviters["frank"] is None

    def test_join_missing_group(self, service):
        with pytest.raises(NotFound):
            service.join_group("nope", "carol")

    def test_leave_only_yourself(self, service, group_id):
        with pytest.raises(Forbidden):
            service.leave_group(group_id, "bob", "alice")
        service.leave_group(group_id, "bob", "bob")
        assert [m.user_id for m in service.list_members(group_id)] == ["alice"]

    def test_list_groups_for_user(self, service, group_id):
        assert [g.id for g in service.list_groups("bob")] == [group_id]
        assert service.list_groups("carol") == []


@pytest.mark.asyncio
async def test_group_routes(client, group_id):
    response = await client.get(f"{API}/groups/{group_id}")
    assert response.status_code == 200
    assert response.json()["is_member"] is False

    response = await client.get(f"{API}/groups/{group_id}/members", headers=auth_headers("carol"))
    assert response.status_code == 403

    response = await client.post(
        f"{API}/groups/{group_id}/join", json={"invited_by": "bob"}, headers=auth_headers("carol")
    )
    assert response.status_code == 200

    response = await client.get(f"{API}/groups/{group_id}/members", headers=auth_headers("carol"))
    members = {m["user_id"]: m for m in response.json()["members"]}
    assert set(members) == {"alice", "bob", "carol"}
    assert members["carol"]["invited_by"] == "bob"

    response = await client.post(f"{API}/groups", json={"name": "Family", "icon": "👪"}, headers=auth_headers("carol"))
    assert response.status_code == 201
    assert response.json()["group"]["owner_id"] == "carol"
