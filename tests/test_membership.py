import pytest

from app.core.exceptions import Forbidden, Unauthorized, Unavailable
from app.core.membership import ensure_creator, ensure_group_member, is_group_member
from tests.helpers import make_group


def test_owner_and_member_both_count(supabase, group_id):
    assert is_group_member(group_id, "alice", supabase)
    assert is_group_member(group_id, "bob", supabase)
    assert not is_group_member(group_id, "carol", supabase)


def test_membership_is_per_group(supabase, group_id):
    other = make_group(supabase, owner="carol", members=(), name="Book club")
    assert not is_group_member(other, "alice", supabase)
    assert is_group_member(other, "carol", supabase)


def test_missing_user_is_unauthorized(supabase, group_id):
    with pytest.raises(Unauthorized):
        ensure_group_member(group_id, None, supabase)


def test_outsider_is_forbidden(supabase, group_id):
    with pytest.raises(Forbidden) as exc:
        ensure_group_member(group_id, "carol", supabase)
    assert exc.value.status_code == 403
    assert exc.value.detail == "You must be a member of this group"


def test_store_failure_is_unavailable(supabase, group_id):
    supabase.fail_on("group_members", "select")
    with pytest.raises(Unavailable):
        ensure_group_member(group_id, "alice", supabase)


def test_creator_check():
    ensure_creator("alice", "alice", "nope")
    with pytest.raises(Forbidden) as exc:
        ensure_creator("alice", "bob", "Only the poll creator can remove it.")
    assert exc.value.detail == "Only the poll creator can remove it."
