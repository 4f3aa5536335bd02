from supabase import Client
from app.core.exceptions import Forbidden, InvalidArgument, NotFound, Unavailable
from app.core.membership import is_group_member
from app.modules.groups.models import GROUPS_TABLE, MEMBERS_TABLE
from app.modules.groups.schemas import (
    GroupCreate, GroupResponse, GroupMemberResponse, GroupPreview
)
from typing import Dict, List, Optional, Tuple
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

GROUP_SELECT = "id, name, icon, preset, owner_id, created_at"
MEMBER_SELECT = "group_id, user_id, role, invited_by, joined_at"


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _fetch_group_row(self, group_id: str) -> Optional[dict]:
        result = self.supabase.table(GROUPS_TABLE)\
            .select(GROUP_SELECT)\
            .eq("id", group_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def _fetch_members(self, group_ids: List[str]) -> Dict[str, List[GroupMemberResponse]]:
        if not group_ids:
            return {}
        result = self.supabase.table(MEMBERS_TABLE)\
            .select(MEMBER_SELECT)\
            .in_("group_id", group_ids)\
            .order("joined_at")\
            .execute()
        members: Dict[str, List[GroupMemberResponse]] = {gid: [] for gid in group_ids}
        for row in result.data or []:
            members.setdefault(row["group_id"], []).append(GroupMemberResponse(**row))
        return members

    def _build_group(self, row: dict, members: List[GroupMemberResponse]) -> GroupResponse:
        return GroupResponse(**row, members=members)

    def get_group(self, group_id: str) -> GroupResponse:
        """Get group with its members"""
        try:
            row = self._fetch_group_row(group_id)
            if not row:
                raise NotFound("Group not found.")
            members = self._fetch_members([group_id])
            return self._build_group(row, members.get(group_id, []))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to load group {group_id}: {e}")
            raise Unavailable("Unable to load group.")

    def create_group(self, group_data: GroupCreate, user_id: str) -> GroupResponse:
        """Create a group; the creator becomes its owner and listed members join as members"""
        name = group_data.name.strip()
        icon = group_data.icon.strip()
        preset = (group_data.preset or "").strip() or "custom"
        if not name or not icon:
            raise InvalidArgument("Group name and icon are required.")

        try:
            result = self.supabase.table(GROUPS_TABLE).insert({
                "name": name,
                "icon": icon,
                "preset": preset,
                "owner_id": user_id,
            }).execute()
            if not result.data:
                raise Unavailable("Failed to create group.")
            group_id = result.data[0]["id"]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create group: {e}")
            raise Unavailable("Failed to create group.")

        # Creator first; the owner row must not be downgraded by a duplicate member id
        member_ids = [m for m in dict.fromkeys(group_data.member_ids) if m and m != user_id]
        member_rows = [{"group_id": group_id, "user_id": user_id, "role": "owner", "invited_by": user_id}]
        member_rows.extend(
            {"group_id": group_id, "user_id": m, "role": "member", "invited_by": user_id}
            for m in member_ids
        )
        try:
            self.supabase.table(MEMBERS_TABLE)\
                .upsert(member_rows, on_conflict="group_id,user_id")\
                .execute()
        except Exception as e:
            logger.error(f"Failed to add initial members to group {group_id}: {e}")
            self._discard_group(group_id)
            raise Unavailable("Failed to create group.")

        return self.get_group(group_id)

    def _discard_group(self, group_id: str) -> None:
        try:
            self.supabase.table(MEMBERS_TABLE).delete().eq("group_id", group_id).execute()
            self.supabase.table(GROUPS_TABLE).delete().eq("id", group_id).execute()
        except Exception as e:
            logger.error(f"Failed to roll back group {group_id}: {e}")

    def list_groups(self, user_id: str) -> List[GroupResponse]:
        """List groups the user is a member of, with members"""
        try:
            members_result = self.supabase.table(MEMBERS_TABLE)\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = list(dict.fromkeys(m["group_id"] for m in (members_result.data or [])))
            if not group_ids:
                return []
            groups_result = self.supabase.table(GROUPS_TABLE)\
                .select(GROUP_SELECT)\
                .in_("id", group_ids)\
                .order("created_at", desc=True)\
                .execute()
            members = self._fetch_members(group_ids)
            return [self._build_group(row, members.get(row["id"], [])) for row in (groups_result.data or [])]
        except Exception as e:
            logger.error(f"Failed to fetch groups for user {user_id}: {e}")
            raise Unavailable("Failed to fetch groups.")

    def get_preview(self, group_id: str, user_id: Optional[str]) -> Tuple[GroupPreview, bool]:
        """Invite preview. Exempt from MembershipGuard: non-members get is_member=False, not 403."""
        try:
            row = self._fetch_group_row(group_id)
            if not row:
                raise NotFound("Group not found.")
            members = self._fetch_members([group_id]).get(group_id, [])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to load group preview {group_id}: {e}")
            raise Unavailable("Unable to load group.")
        preview = GroupPreview(
            id=row["id"],
            name=row["name"],
            icon=row["icon"],
            preset=row.get("preset") or "custom",
            member_count=len(members),
        )
        is_member = bool(user_id) and any(m.user_id == user_id for m in members)
        return preview, is_member

    def join_group(self, group_id: str, user_id: str, invited_by: Optional[str] = None) -> GroupResponse:
        """Accept an invite. Re-joining is a no-op that keeps the existing role.

        The inviter is recorded only when it names another current member.
        """
        try:
            if not self._fetch_group_row(group_id):
                raise NotFound("Group not found.")
            if invited_by == user_id or (invited_by and not is_group_member(group_id, invited_by, self.supabase)):
                invited_by = None
            self.supabase.table(MEMBERS_TABLE).upsert(
                {
                    "group_id": group_id,
                    "user_id": user_id,
                    "role": "member",
                    "invited_by": invited_by,
                },
                on_conflict="group_id,user_id",
                ignore_duplicates=True,
            ).execute()
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to join group {group_id}: {e}")
            raise Unavailable("Unable to join the group.")
        logger.info(f"User {user_id} joined group {group_id}")
        return self.get_group(group_id)

    def leave_group(self, group_id: str, member_id: str, requester_id: str) -> None:
        """Remove the requester's own membership row"""
        if member_id != requester_id:
            raise Forbidden("You can only remove yourself from a group.")
        try:
            self.supabase.table(MEMBERS_TABLE)\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", member_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to leave group {group_id}: {e}")
            raise Unavailable("Failed to leave the group.")
        logger.info(f"User {member_id} left group {group_id}")

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        try:
            return self._fetch_members([group_id]).get(group_id, [])
        except Exception as e:
            logger.error(f"Failed to list members of group {group_id}: {e}")
            raise Unavailable("Unable to load members.")
