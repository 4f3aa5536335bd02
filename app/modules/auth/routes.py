from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
async def get_me(current_user: Dict = Depends(get_current_user)):
    """Resolve the bearer token to the principal the API will act as"""
    return current_user
