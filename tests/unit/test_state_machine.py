"""Unit tests for the question set transition table and guarded transitions."""

import uuid

import pytest

from assessment_engine.kernel.models import QuestionSet, QuestionSetStatus
from assessment_engine.orchestration.state_machine import (
    StateMachine,
    can_transition,
    valid_transitions,
)

S = QuestionSetStatus


class TestTransitionTable:
    @pytest.mark.parametrize(
        "actor,from_state,to_state",
        [
            ("dispatch", S.PENDING, S.GENERATING),
            ("dispatch", S.FAILED, S.GENERATING),
            ("webhook", S.GENERATING, S.COMPLETED),
            ("webhook", S.GENERATING, S.FAILED),
            ("dispatch", S.GENERATING, S.PENDING),
        ],
    )
    def test_allowed(self, actor, from_state, to_state):
        assert can_transition(actor, from_state, to_state)

    @pytest.mark.parametrize(
        "actor,from_state,to_state",
        [
            ("dispatch", S.COMPLETED, S.GENERATING),
            ("dispatch", S.GENERATING, S.GENERATING),
            ("webhook", S.COMPLETED, S.FAILED),
            ("webhook", S.FAILED, S.COMPLETED),
            ("webhook", S.PENDING, S.COMPLETED),
            ("dispatch", S.GENERATING, S.COMPLETED),
            ("poll", S.GENERATING, S.COMPLETED),
        ],
    )
    def test_rejected(self, actor, from_state, to_state):
        assert not can_transition(actor, from_state, to_state)

    def test_terminal_completed_has_no_exit(self):
        assert valid_transitions(S.COMPLETED) == []

    def test_generating_targets(self):
        assert set(valid_transitions(S.GENERATING)) == {S.COMPLETED, S.FAILED, S.PENDING}

    def test_accepts_plain_strings(self):
        assert can_transition("dispatch", "pending", "generating")


class TestGuardedTransition:
    @pytest.mark.asyncio
    async def test_applies_when_state_matches(self, db_session, pending_set):
        machine = StateMachine(db_session)
        won = await machine.transition(pending_set.id, "dispatch", S.PENDING, S.GENERATING, job_id="job-1")
        await db_session.commit()

        assert won is True
        refreshed = await db_session.get(QuestionSet, pending_set.id, populate_existing=True)
        assert refreshed.status == S.GENERATING
        assert refreshed.job_id == "job-1"

    @pytest.mark.asyncio
    async def test_loses_when_state_moved_on(self, db_session, pending_set):
        machine = StateMachine(db_session)
        assert await machine.transition(pending_set.id, "dispatch", S.PENDING, S.GENERATING, job_id="job-1")
        assert not await machine.transition(pending_set.id, "dispatch", S.PENDING, S.GENERATING, job_id="job-2")

    @pytest.mark.asyncio
    async def test_expected_job_id_must_match(self, db_session, pending_set):
        machine = StateMachine(db_session)
        await machine.transition(pending_set.id, "dispatch", S.PENDING, S.GENERATING, job_id="job-1")
        assert not await machine.transition(
            pending_set.id, "webhook", S.GENERATING, S.COMPLETED, expected_job_id="job-0"
        )
        assert await machine.transition(
            pending_set.id, "webhook", S.GENERATING, S.COMPLETED, expected_job_id="job-1"
        )

    @pytest.mark.asyncio
    async def test_unknown_set_is_a_lost_race(self, db_session):
        machine = StateMachine(db_session)
        assert not await machine.transition(uuid.uuid4(), "dispatch", S.PENDING, S.GENERATING)

    @pytest.mark.asyncio
    async def test_invalid_transition_raises(self, db_session, pending_set):
        with pytest.raises(ValueError):
            await StateMachine(db_session).transition(pending_set.id, "webhook", S.PENDING, S.COMPLETED)
