from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class PollCreate(BaseModel):
    question: str
    options: List[str] = Field(default_factory=list)


class PollVote(BaseModel):
    """option_id=None clears the caller's vote"""
    option_id: Optional[str] = None


class PollOptionResponse(BaseModel):
    id: str
    poll_id: str
    label: str
    position: int = 0
    voters: List[str] = Field(default_factory=list)
    vote_count: int = 0
    percentage: int = 0
    created_at: Optional[datetime] = None


class PollResponse(BaseModel):
    id: str
    group_id: str
    question: str
    created_by: str
    created_at: datetime
    options: List[PollOptionResponse] = Field(default_factory=list)
    total_votes: int = 0

    class Config:
        from_attributes = True


class PollEnvelope(BaseModel):
    poll: PollResponse


class PollListEnvelope(BaseModel):
    polls: List[PollResponse]
