from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.statuses.schemas import StatusPut, StatusEnvelope, StatusListEnvelope
from app.modules.statuses.service import StatusService
from app.core.dependencies import get_current_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/groups/{group_id}/statuses", tags=["statuses"])


def get_status_service(supabase: Client = Depends(get_supabase)) -> StatusService:
    return StatusService(supabase)


@router.get("", response_model=StatusListEnvelope)
async def list_statuses(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: StatusService = Depends(get_status_service)
):
    """Live (unexpired) statuses in the group"""
    return {"statuses": service.list_statuses(group_id, user_data["id"])}


@router.post("", response_model=StatusEnvelope)
async def put_status(
    group_id: str,
    status_data: StatusPut,
    user_data: Dict = Depends(get_current_user),
    service: StatusService = Depends(get_status_service)
):
    """Set or replace the caller's own status"""
    status = service.put_status(
        group_id,
        user_data["id"],
        status_data.message,
        emoji=status_data.emoji,
        image=status_data.image,
        expires_in=status_data.expires_in,
    )
    return {"status": status}
