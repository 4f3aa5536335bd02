from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.core.schemas import SuccessResponse
from app.modules.polls.schemas import PollCreate, PollVote, PollEnvelope, PollListEnvelope
from app.modules.polls.service import PollService
from app.core.dependencies import get_current_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/groups/{group_id}/polls", tags=["polls"])


def get_poll_service(supabase: Client = Depends(get_supabase)) -> PollService:
    return PollService(supabase)


@router.get("", response_model=PollListEnvelope)
async def list_polls(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: PollService = Depends(get_poll_service)
):
    return {"polls": service.list_polls(group_id, user_data["id"])}


@router.post("", response_model=PollEnvelope, status_code=201)
async def create_poll(
    group_id: str,
    poll_data: PollCreate,
    user_data: Dict = Depends(get_current_user),
    service: PollService = Depends(get_poll_service)
):
    """Create a poll with 2-6 unique options"""
    return {"poll": service.create_poll(group_id, user_data["id"], poll_data.question, poll_data.options)}


@router.get("/{poll_id}", response_model=PollEnvelope)
async def get_poll(
    group_id: str,
    poll_id: str,
    user_data: Dict = Depends(get_current_user),
    service: PollService = Depends(get_poll_service)
):
    return {"poll": service.get_poll(group_id, poll_id, user_data["id"])}


@router.post("/{poll_id}/vote", response_model=PollEnvelope)
async def vote(
    group_id: str,
    poll_id: str,
    vote_data: PollVote,
    user_data: Dict = Depends(get_current_user),
    service: PollService = Depends(get_poll_service)
):
    """Replace the caller's vote; option_id=null clears it"""
    return {"poll": service.vote(group_id, poll_id, user_data["id"], vote_data.option_id)}


@router.delete("/{poll_id}", response_model=SuccessResponse)
async def delete_poll(
    group_id: str,
    poll_id: str,
    user_data: Dict = Depends(get_current_user),
    service: PollService = Depends(get_poll_service)
):
    """Delete a poll (creator only)"""
    service.delete_poll(group_id, poll_id, user_data["id"])
    return {"success": True}
