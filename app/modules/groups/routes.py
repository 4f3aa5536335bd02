from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.core.schemas import SuccessResponse
from app.modules.groups.schemas import (
    GroupCreate, GroupEnvelope, GroupJoin, GroupListEnvelope, GroupPreviewEnvelope,
    GroupMemberListEnvelope
)
from app.modules.groups.service import GroupService
from app.core.dependencies import get_current_user, get_optional_user, check_group_member
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.get("", response_model=GroupListEnvelope)
async def list_groups(
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """List groups the caller belongs to"""
    return {"groups": service.list_groups(user_data["id"])}


@router.post("", response_model=GroupEnvelope, status_code=201)
async def create_group(
    group_data: GroupCreate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a group owned by the caller"""
    return {"group": service.create_group(group_data, user_data["id"])}


@router.get("/{group_id}", response_model=GroupPreviewEnvelope)
async def get_group_preview(
    group_id: str,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: GroupService = Depends(get_group_service)
):
    """Invite preview; works without a session"""
    preview, is_member = service.get_preview(group_id, user_data["id"] if user_data else None)
    return {"group": preview, "is_member": is_member}


@router.post("/{group_id}/join", response_model=GroupEnvelope)
async def join_group(
    group_id: str,
    payload: Optional[GroupJoin] = None,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    invited_by = payload.invited_by if payload else None
    return {"group": service.join_group(group_id, user_data["id"], invited_by)}


@router.get("/{group_id}/members", response_model=GroupMemberListEnvelope)
async def list_members(
    group_id: str,
    user_data: Dict = Depends(check_group_member),
    service: GroupService = Depends(get_group_service)
):
    return {"members": service.list_members(group_id)}


@router.delete("/{group_id}/members/{member_id}", response_model=SuccessResponse)
async def leave_group(
    group_id: str,
    member_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Leave a group. Members can only remove themselves."""
    service.leave_group(group_id, member_id, user_data["id"])
    return {"success": True}
