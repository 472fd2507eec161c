"""
State machine for the QuestionSet lifecycle.

    pending -> generating -> {completed | failed}
    failed  -> generating                     (re-dispatch)
    generating -> pending/failed              (dispatch compensation)

Every status write goes through StateMachine.transition(), a single
``UPDATE ... WHERE id = :id AND status = :expected`` statement. Its rowcount
tells the caller whether it won the race against the other writers
(start-request, webhook, compensation); a loser sees rowcount 0 and must not
touch the row.
"""

import uuid
from typing import Any, Dict, FrozenSet, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.kernel.models.question_set import QuestionSet, QuestionSetStatus
from assessment_engine.logging_config import get_logger

logger = get_logger(__name__)

# Valid transitions: (from_state, to_state) -> who may trigger
_TRANSITIONS: Dict[Tuple[QuestionSetStatus, QuestionSetStatus], FrozenSet[str]] = {
    (QuestionSetStatus.PENDING, QuestionSetStatus.GENERATING): frozenset({"dispatch"}),
    (QuestionSetStatus.FAILED, QuestionSetStatus.GENERATING): frozenset({"dispatch"}),
    (QuestionSetStatus.GENERATING, QuestionSetStatus.COMPLETED): frozenset({"webhook"}),
    (QuestionSetStatus.GENERATING, QuestionSetStatus.FAILED): frozenset({"webhook", "dispatch"}),
    # Compensation when the worker refuses or cannot be reached
    (QuestionSetStatus.GENERATING, QuestionSetStatus.PENDING): frozenset({"dispatch"}),
}


def valid_transitions(from_state: QuestionSetStatus) -> list[QuestionSetStatus]:
    """Return list of valid target states from given state."""
    return sorted({t for (f, t) in _TRANSITIONS if f == from_state}, key=lambda s: s.value)


def can_transition(actor: str, from_state: QuestionSetStatus, to_state: QuestionSetStatus) -> bool:
    """Check if the given actor (dispatch/webhook) may move from_state -> to_state."""
    return actor in _TRANSITIONS.get((QuestionSetStatus(from_state), QuestionSetStatus(to_state)), frozenset())


class StateMachine:
    """Performs guarded status transitions on question sets."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def transition(
        self,
        question_set_id: uuid.UUID,
        actor: str,
        from_state: QuestionSetStatus,
        to_state: QuestionSetStatus,
        expected_job_id: Optional[str] = None,
        **values: Any,
    ) -> bool:
        """
        Atomically move a set from from_state to to_state.

        Extra keyword arguments are written in the same statement (job_id,
        total_questions, failure_reason...). When expected_job_id is given the
        row must also still carry that job id.

        Returns:
            True if this call performed the transition, False if the row was no
            longer in from_state (another writer got there first).

        Raises:
            ValueError: if the transition is not in the table for this actor
        """
        if not can_transition(actor, from_state, to_state):
            raise ValueError(f"Invalid transition: {from_state.value} -> {to_state.value} by {actor}")

        stmt = (
            update(QuestionSet)
            .where(QuestionSet.id == question_set_id)
            .where(QuestionSet.status == from_state.value)
        )
        if expected_job_id is not None:
            stmt = stmt.where(QuestionSet.job_id == expected_job_id)
        stmt = stmt.values(status=to_state.value, **values).execution_options(synchronize_session=False)

        result = await self.session.execute(stmt)
        won = result.rowcount == 1
        logger.debug(
            "Status transition %s",
            "applied" if won else "lost",
            extra={
                "question_set_id": str(question_set_id),
                "from_state": from_state.value,
                "to_state": to_state.value,
                "actor": actor,
            },
        )
        return won
