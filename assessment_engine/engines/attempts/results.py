"""
Results view - a teacher's read-only report for one question set.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.kernel.errors import NotFound
from assessment_engine.kernel.models import AccessToken, AttemptResult, Participant, QuestionSet


@dataclass(frozen=True)
class ResultStats:
    total_invitations: int = 0
    total_attempts: int = 0
    average_percentage: float = 0.0
    passed_count: int = 0


@dataclass(frozen=True)
class SetResults:
    question_set: QuestionSet
    results: List[Tuple[AttemptResult, Participant]] = field(default_factory=list)
    invitations: List[Tuple[AccessToken, Participant]] = field(default_factory=list)
    stats: ResultStats = field(default_factory=ResultStats)


class ResultsReport:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def for_set(self, question_set_id: uuid.UUID, teacher_id: uuid.UUID) -> SetResults:
        question_set: Optional[QuestionSet] = await self.session.get(QuestionSet, question_set_id, populate_existing=True)
        if question_set is None or question_set.owner_id != teacher_id:
            raise NotFound("Question set not found", question_set_id=str(question_set_id))

        results = (
            await self.session.execute(
                select(AttemptResult, Participant)
                .join(Participant, Participant.id == AttemptResult.participant_id)
                .where(AttemptResult.question_set_id == question_set_id)
                .order_by(AttemptResult.created_at.desc())
                .execution_options(populate_existing=True)
            )
        ).all()
        invitations = (
            await self.session.execute(
                select(AccessToken, Participant)
                .join(Participant, Participant.id == AccessToken.participant_id)
                .where(AccessToken.question_set_id == question_set_id)
                .order_by(AccessToken.created_at.desc())
                .execution_options(populate_existing=True)
            )
        ).all()

        attempts = [row[0] for row in results]
        average = round(sum(r.percentage for r in attempts) / len(attempts), 2) if attempts else 0.0
        stats = ResultStats(
            total_invitations=len(invitations),
            total_attempts=len(attempts),
            average_percentage=average,
            passed_count=sum(1 for r in attempts if r.passed),
        )
        return SetResults(
            question_set=question_set,
            results=[(r, p) for r, p in results],
            invitations=[(t, p) for t, p in invitations],
            stats=stats,
        )
