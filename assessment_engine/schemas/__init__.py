"""
Pydantic schemas for API request/response validation.
"""

from assessment_engine.schemas.access import ShareItem, ShareRequest, ShareResponse
from assessment_engine.schemas.attempt import (
    AttemptQuestionResponse,
    AttemptResultResponse,
    AttemptStartResponse,
    AttemptSubmitRequest,
    ScoreBreakdownResponse,
)
from assessment_engine.schemas.common import ErrorResponse, HealthResponse
from assessment_engine.schemas.generation import (
    DispatchResponse,
    GenerateRequest,
    GenerationStatusResponse,
    WebhookAckResponse,
)
from assessment_engine.schemas.participant import ParticipantCreate, ParticipantResponse
from assessment_engine.schemas.question_set import (
    QuestionResponse,
    QuestionSetCreate,
    QuestionSetDetailResponse,
    QuestionSetResponse,
)
from assessment_engine.schemas.results import (
    InvitationItem,
    ResultItem,
    ResultStatsResponse,
    SetResultsResponse,
)

__all__ = [
    # Question sets
    "QuestionSetCreate",
    "QuestionSetResponse",
    "QuestionSetDetailResponse",
    "QuestionResponse",
    # Generation
    "GenerateRequest",
    "DispatchResponse",
    "GenerationStatusResponse",
    "WebhookAckResponse",
    # Roster and sharing
    "ParticipantCreate",
    "ParticipantResponse",
    "ShareRequest",
    "ShareItem",
    "ShareResponse",
    # Attempts
    "AttemptQuestionResponse",
    "AttemptStartResponse",
    "AttemptSubmitRequest",
    "AttemptResultResponse",
    "ScoreBreakdownResponse",
    # Results
    "ResultItem",
    "InvitationItem",
    "ResultStatsResponse",
    "SetResultsResponse",
    # Common
    "ErrorResponse",
    "HealthResponse",
]
