"""
Attempt Session Manager - one quiz-taking session per access token.

    issued -> in_progress (start) -> graded (submit)

submit() is the race-sensitive operation. Token consumption is a single
conditional UPDATE (consumed = false AND not expired); only the caller whose
UPDATE hits the row may insert the AttemptResult, and both writes commit in
one transaction. The unique (participant, question set) constraint on
attempt_results backs this up at the database level.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.engines.access.token_issuer import TokenIssuer
from assessment_engine.engines.scoring.grader import GradeResult, ScoringEngine
from assessment_engine.kernel.errors import AlreadySubmitted, Conflict, NotReady
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import (
    AccessToken,
    AttemptResult,
    EventType,
    Participant,
    Question,
    QuestionSet,
    QuestionSetStatus,
    ensure_utc,
    utcnow,
)
from assessment_engine.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttemptQuestion:
    """A question as the participant sees it: no correct label."""

    id: uuid.UUID
    position: int
    text: str
    options: Dict[str, str]


@dataclass(frozen=True)
class AttemptSession:
    code: str
    question_set_id: uuid.UUID
    question_set_name: str
    participant_name: str
    questions: List[AttemptQuestion]
    time_limit_seconds: int
    started_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SubmissionOutcome:
    result: AttemptResult
    grade: GradeResult


class AttemptSessionManager:
    """
    Serves questions for a redeemed code and accepts exactly one submission.

    Usage:
        manager = AttemptSessionManager(session, issuer, ScoringEngine())
        attempt = await manager.start(code)
        outcome = await manager.submit(code, {"<question id>": "B"}, time_spent_seconds=312)
    """

    def __init__(
        self,
        session: AsyncSession,
        issuer: TokenIssuer,
        scoring_engine: Optional[ScoringEngine] = None,
        seconds_per_question: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.issuer = issuer
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.seconds_per_question = seconds_per_question
        self.clock = clock
        self.event_store = EventStore(session)

    async def start(self, code: str) -> AttemptSession:
        """
        Validate the code and return the questions without answers.

        Does not consume the token; an abandoned attempt can be resumed.

        Raises:
            NotFound / AlreadyUsed / TokenExpired: from redemption
            NotReady: the set is not completed
            AlreadySubmitted: a result already exists for this participant and set
        """
        token = await self.issuer.redeem(code)
        token_id = token.id
        participant_id = token.participant_id
        question_set_id = token.question_set_id
        expires_at = ensure_utc(token.expires_at)

        question_set = await self._completed_set(question_set_id)
        if await self._has_result(participant_id, question_set_id):
            raise AlreadySubmitted("You have already completed this quiz")

        started_at = ensure_utc(token.started_at)
        if started_at is None:
            now = self.clock()
            first = await self.session.execute(
                update(AccessToken)
                .where(AccessToken.id == token_id, AccessToken.started_at.is_(None))
                .values(started_at=now)
                .execution_options(synchronize_session=False)
            )
            if first.rowcount == 1:
                await self.event_store.log(
                    event_type=EventType.ATTEMPT_STARTED,
                    entity_type="access_token",
                    entity_id=token_id,
                    payload={"question_set_id": question_set_id, "participant_id": participant_id},
                )
            await self.session.commit()
            started_at = ensure_utc(
                await self.session.scalar(select(AccessToken.started_at).where(AccessToken.id == token_id))
            )

        participant_name = await self.session.scalar(
            select(Participant.name).where(Participant.id == participant_id)
        )
        questions = await self._questions(question_set_id)

        logger.info(
            "Attempt started",
            extra={"question_set_id": str(question_set_id), "participant_id": str(participant_id)},
        )
        return AttemptSession(
            code=code,
            question_set_id=question_set_id,
            question_set_name=question_set.name,
            participant_name=participant_name or "",
            questions=[
                AttemptQuestion(id=q.id, position=q.position, text=q.text, options=q.options)
                for q in questions
            ],
            time_limit_seconds=self.time_budget(len(questions)),
            started_at=started_at,
            expires_at=expires_at,
        )

    def time_budget(self, question_count: int) -> int:
        return question_count * self.seconds_per_question

    async def submit(
        self,
        code: str,
        answers: Mapping[str, Optional[str]],
        time_spent_seconds: int,
    ) -> SubmissionOutcome:
        """
        Consume the token, grade the answers and store the result atomically.

        Timed-out and manual submissions are handled identically.

        Raises:
            NotFound / AlreadyUsed / TokenExpired: token no longer consumable
            AlreadySubmitted: a result already exists for this participant and set
            NotReady: the set is not completed
        """
        now = self.clock()
        consumed = await self.session.execute(
            update(AccessToken)
            .where(
                AccessToken.code == code,
                AccessToken.consumed.is_(False),
                AccessToken.expires_at >= now,
            )
            .values(consumed=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            await self.session.rollback()
            # Raises the specific reason; falling through means we lost a race
            await self.issuer.redeem(code)
            raise Conflict("This access code is being submitted by another request")

        token = await self.session.scalar(
            select(AccessToken)
            .where(AccessToken.code == code)
            .execution_options(populate_existing=True)
        )
        token_id = token.id
        participant_id = token.participant_id
        question_set_id = token.question_set_id

        if await self._has_result(participant_id, question_set_id):
            await self.session.rollback()
            raise AlreadySubmitted("You have already completed this quiz")

        question_set = await self.session.get(QuestionSet, question_set_id, populate_existing=True)
        if question_set is None or question_set.status != QuestionSetStatus.COMPLETED:
            await self.session.rollback()
            raise NotReady("Quiz is not available", question_set_id=str(question_set_id))

        questions = await self._questions(question_set_id)
        graded = self.scoring_engine.grade(questions, answers, time_spent_seconds)

        result = AttemptResult(
            participant_id=participant_id,
            question_set_id=question_set_id,
            access_token_id=token_id,
            correct_count=graded.correct_count,
            wrong_count=graded.wrong_count,
            unattempted_count=graded.unattempted_count,
            total_questions=graded.total_questions,
            raw_score=graded.raw_score,
            final_score=graded.final_score,
            percentage=graded.percentage,
            grade=graded.grade,
            passed=graded.passed,
            time_spent_seconds=time_spent_seconds,
            answers=json.dumps(_recorded_answers(questions, answers)),
        )
        self.session.add(result)

        try:
            await self.session.flush()
            await self.event_store.log(
                event_type=EventType.ATTEMPT_GRADED,
                entity_type="attempt_result",
                entity_id=result.id,
                payload={
                    "access_token_id": token_id,
                    "question_set_id": question_set_id,
                    "participant_id": participant_id,
                    "percentage": graded.percentage,
                    "grade": graded.grade,
                    "passed": graded.passed,
                },
            )
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Duplicate attempt result rejected",
                extra={"question_set_id": str(question_set_id), "participant_id": str(participant_id)},
            )
            raise AlreadySubmitted("You have already completed this quiz") from e

        logger.info(
            "Attempt graded",
            extra={
                "question_set_id": str(question_set_id),
                "participant_id": str(participant_id),
                "percentage": graded.percentage,
                "passed": graded.passed,
            },
        )
        return SubmissionOutcome(result=result, grade=graded)

    async def _completed_set(self, question_set_id: uuid.UUID) -> QuestionSet:
        question_set = await self.session.get(QuestionSet, question_set_id, populate_existing=True)
        if question_set is None or question_set.status != QuestionSetStatus.COMPLETED:
            raise NotReady("Quiz is not available yet", question_set_id=str(question_set_id))
        return question_set

    async def _has_result(self, participant_id: uuid.UUID, question_set_id: uuid.UUID) -> bool:
        existing = await self.session.scalar(
            select(AttemptResult.id).where(
                AttemptResult.participant_id == participant_id,
                AttemptResult.question_set_id == question_set_id,
            )
        )
        return existing is not None

    async def _questions(self, question_set_id: uuid.UUID) -> List[Question]:
        result = await self.session.execute(
            select(Question)
            .where(Question.question_set_id == question_set_id)
            .order_by(Question.position)
        )
        return list(result.scalars().all())


def _recorded_answers(questions: List[Question], answers: Mapping[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Answer map restricted to the set's questions, labels upper-cased, blanks as None."""
    recorded: Dict[str, Optional[str]] = {}
    for question in questions:
        key = str(question.id)
        value = (answers.get(key) or "").strip().upper()
        recorded[key] = value or None
    return recorded
