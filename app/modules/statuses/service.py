from supabase import Client
from app.core.exceptions import InvalidArgument, Unavailable
from app.core.membership import ensure_group_member
from app.modules.statuses.models import STATUSES_TABLE
from app.modules.statuses.schemas import StatusResponse, StatusTimeout, expiration_for
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

STATUS_SELECT = "group_id, user_id, message, emoji, image, expires_at, updated_at"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_statuses(self, group_id: str, user_id: str, now: Optional[datetime] = None) -> List[StatusResponse]:
        """Live statuses for a group, most recently updated first. Expired rows are filtered here, at read time."""
        ensure_group_member(group_id, user_id, self.supabase)
        now = now or utcnow()
        try:
            result = self.supabase.table(STATUSES_TABLE)\
                .select(STATUS_SELECT)\
                .eq("group_id", group_id)\
                .or_(f'expires_at.is.null,expires_at.gt."{now.isoformat()}"')\
                .order("updated_at", desc=True)\
                .execute()
            return [StatusResponse(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Failed to load statuses for group {group_id}: {e}")
            raise Unavailable("Unable to load statuses.")

    def put_status(
        self,
        group_id: str,
        user_id: str,
        message: str,
        emoji: Optional[str] = None,
        image: Optional[str] = None,
        expires_in: StatusTimeout = StatusTimeout.NEVER,
        now: Optional[datetime] = None,
    ) -> StatusResponse:
        """Set the caller's status in a group, replacing any previous one"""
        ensure_group_member(group_id, user_id, self.supabase)
        text = (message or "").strip()
        if not text:
            raise InvalidArgument("Status text is required.")

        now = now or utcnow()
        expires_at = expiration_for(expires_in, now)
        payload = {
            "group_id": group_id,
            "user_id": user_id,
            "message": text,
            "emoji": (emoji or "").strip() or None,
            "image": image or None,
            "expires_at": expires_at.isoformat() if expires_at else None,
            "updated_at": now.isoformat(),
        }
        try:
            result = self.supabase.table(STATUSES_TABLE)\
                .upsert(payload, on_conflict="group_id,user_id")\
                .execute()
            if not result.data:
                raise Unavailable("Unable to update status.")
            return StatusResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to save status for user {user_id} in group {group_id}: {e}")
            raise Unavailable("Unable to update status.")

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Physically delete expired rows across all groups. Returns how many were removed."""
        now = now or utcnow()
        try:
            result = self.supabase.table(STATUSES_TABLE)\
                .delete()\
                .lt("expires_at", now.isoformat())\
                .execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Failed to purge expired statuses: {e}")
            raise Unavailable("Unable to purge statuses.")
