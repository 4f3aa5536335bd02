from typing import Dict, Iterable

from app.modules.groups.schemas import GroupCreate
from app.modules.groups.service import GroupService

API = "/api/v1"


def auth_headers(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{user_id}"}


def make_group(supabase, owner: str = "alice", members: Iterable[str] = ("bob",), name: str = "Roommates") -> str:
    group = GroupService(supabase).create_group(
        GroupCreate(name=name, icon="🏠", preset="roommates", member_ids=list(members)),
        owner,
    )
    return group.id
