"""
Sharing schemas: issue access codes to participants.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ShareRequest(BaseModel):
    participant_ids: List[uuid.UUID] = Field(..., min_length=1, max_length=500)
    ttl_days: Optional[int] = Field(None, ge=1, le=90)


class ShareItem(BaseModel):
    """One participant's code. Delivery status is independent of the code's existence."""

    participant_id: uuid.UUID
    participant_email: str
    code: str
    link: str
    expires_at: datetime
    reused: bool
    notification: str
    notification_detail: Optional[str] = None


class ShareResponse(BaseModel):
    question_set_id: uuid.UUID
    items: List[ShareItem]
    issued: int = 0
    reused: int = 0
    notifications_failed: int = 0
