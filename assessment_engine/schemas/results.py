"""
Results report schemas (teacher view).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class ResultItem(BaseModel):
    id: uuid.UUID
    participant_id: uuid.UUID
    participant_name: str
    participant_email: str
    correct_count: int
    wrong_count: int
    unattempted_count: int
    total_questions: int
    final_score: float
    percentage: int
    grade: str
    passed: bool
    time_spent_seconds: int
    created_at: datetime


class InvitationItem(BaseModel):
    code: str
    participant_id: uuid.UUID
    participant_name: str
    participant_email: str
    phase: str
    consumed: bool
    started_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime


class ResultStatsResponse(BaseModel):
    total_invitations: int
    total_attempts: int
    average_percentage: float
    passed_count: int


class SetResultsResponse(BaseModel):
    question_set_id: uuid.UUID
    question_set_name: str
    total_questions: int
    results: List[ResultItem]
    invitations: List[InvitationItem]
    stats: ResultStatsResponse
