"""
Participant roster schemas.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class ParticipantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class ParticipantResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True
