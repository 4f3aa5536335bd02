from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class GroupCreate(BaseModel):
    name: str
    icon: str
    preset: Optional[str] = "custom"
    member_ids: List[str] = Field(default_factory=list)


class GroupJoin(BaseModel):
    invited_by: Optional[str] = None


class GroupMemberResponse(BaseModel):
    group_id: str
    user_id: str
    role: str
    invited_by: Optional[str] = None
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupResponse(BaseModel):
    id: str
    name: str
    icon: str
    preset: str = "custom"
    owner_id: str
    created_at: datetime
    members: List[GroupMemberResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class GroupPreview(BaseModel):
    """What a not-yet-member sees on an invite link."""
    id: str
    name: str
    icon: str
    preset: str = "custom"
    member_count: int = 0


class GroupEnvelope(BaseModel):
    group: GroupResponse


class GroupListEnvelope(BaseModel):
    groups: List[GroupResponse]


class GroupPreviewEnvelope(BaseModel):
    group: GroupPreview
    is_member: bool


class GroupMemberListEnvelope(BaseModel):
    members: List[GroupMemberResponse]
