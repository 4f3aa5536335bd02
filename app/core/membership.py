"""MembershipGuard: the gate in front of every group-scoped read and write."""

from supabase import Client
from typing import Optional
import logging

from app.core.exceptions import Forbidden, Unauthorized, Unavailable
from app.modules.groups.models import MEMBERS_TABLE

logger = logging.getLogger(__name__)


def is_group_member(group_id: str, user_id: str, supabase: Client) -> bool:
    """True iff a group_members row exists for (group_id, user_id), whatever the role."""
    try:
        result = supabase.table(MEMBERS_TABLE)\
            .select("group_id")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
    except Exception as e:
        logger.error(f"Error checking membership for group {group_id}: {e}")
        raise Unavailable("Unable to verify group membership.")
    return bool(result.data)


def ensure_group_member(group_id: str, user_id: Optional[str], supabase: Client) -> None:
    if not user_id:
        raise Unauthorized()
    if not is_group_member(group_id, user_id, supabase):
        raise Forbidden("You must be a member of this group")


def ensure_creator(created_by: str, requester_id: str, detail: str) -> None:
    """Authorship check, evaluated after membership."""
    if created_by != requester_id:
        raise Forbidden(detail)
