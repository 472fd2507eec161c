"""
Attempt endpoints (participant, unauthenticated: the access code is the credential).
"""

from fastapi import APIRouter

from assessment_engine.api.deps import SessionManager
from assessment_engine.schemas.attempt import (
    AttemptQuestionResponse,
    AttemptResultResponse,
    AttemptStartResponse,
    AttemptSubmitRequest,
    ScoreBreakdownResponse,
)

router = APIRouter()


@router.get("/{code}", response_model=AttemptStartResponse)
async def start_attempt(code: str, manager: SessionManager):
    """Load the quiz for a code. Does not use up the code."""
    attempt = await manager.start(code)
    return AttemptStartResponse(
        code=attempt.code,
        question_set_id=attempt.question_set_id,
        question_set_name=attempt.question_set_name,
        participant_name=attempt.participant_name,
        total_questions=len(attempt.questions),
        time_limit_seconds=attempt.time_limit_seconds,
        started_at=attempt.started_at,
        expires_at=attempt.expires_at,
        questions=[
            AttemptQuestionResponse(id=q.id, position=q.position, text=q.text, options=q.options)
            for q in attempt.questions
        ],
    )


@router.post("/{code}/submit", response_model=AttemptResultResponse)
async def submit_attempt(code: str, data: AttemptSubmitRequest, manager: SessionManager):
    """Grade the answers and use up the code. Only the first submission counts."""
    outcome = await manager.submit(code, data.answers, data.time_spent_seconds)
    graded = outcome.grade
    return AttemptResultResponse(
        result_id=outcome.result.id,
        question_set_id=outcome.result.question_set_id,
        total_questions=graded.total_questions,
        correct_count=graded.correct_count,
        wrong_count=graded.wrong_count,
        unattempted_count=graded.unattempted_count,
        raw_score=graded.raw_score,
        final_score=graded.final_score,
        percentage=graded.percentage,
        grade=graded.grade,
        passed=graded.passed,
        time_spent_seconds=graded.time_spent_seconds,
        negative_marking=graded.negative_marking,
        breakdown=ScoreBreakdownResponse(**graded.breakdown.model_dump()),
    )
