from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime, timedelta
from enum import Enum


class StatusTimeout(str, Enum):
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    EIGHT_HOURS = "8h"
    ONE_DAY = "24h"
    NEVER = "never"


STATUS_TIMEOUTS = {
    StatusTimeout.THIRTY_MINUTES: timedelta(minutes=30),
    StatusTimeout.ONE_HOUR: timedelta(hours=1),
    StatusTimeout.FOUR_HOURS: timedelta(hours=4),
    StatusTimeout.EIGHT_HOURS: timedelta(hours=8),
    StatusTimeout.ONE_DAY: timedelta(hours=24),
}


def expiration_for(timeout: StatusTimeout, now: datetime) -> Optional[datetime]:
    """None for NEVER, otherwise now + the timeout's duration"""
    duration = STATUS_TIMEOUTS.get(timeout)
    return now + duration if duration else None


class StatusPut(BaseModel):
    message: str
    emoji: Optional[str] = None
    image: Optional[str] = None
    expires_in: StatusTimeout = StatusTimeout.NEVER


class StatusResponse(BaseModel):
    group_id: str
    user_id: str
    message: str
    emoji: Optional[str] = None
    image: Optional[str] = None
    expires_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class StatusEnvelope(BaseModel):
    status: StatusResponse


class StatusListEnvelope(BaseModel):
    statuses: List[StatusResponse]
