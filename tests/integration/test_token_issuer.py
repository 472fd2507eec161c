"""
Integration tests for access token issuance and redemption.
"""

import asyncio
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from assessment_engine.engines.access.roster import Roster
from assessment_engine.kernel.errors import AlreadyUsed, Conflict, NotFound, NotReady, TokenExpired
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import AccessToken, EventType, ensure_utc


class TestIssue:
    @pytest.mark.asyncio
    async def test_issue_mints_token_and_sends_invitation(
        self, db_session, make_issuer, notifier, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)

        result = await issuer.issue(completed_set.id, participant.id, teacher_id)

        assert result.reused is False
        assert result.notification_status == "delivered"
        assert ensure_utc(result.token.expires_at) == clock.now + timedelta(days=7)
        assert result.token.consumed is False
        assert len(result.token.code) >= 32

        recipient, subject, body = notifier.sent[0]
        assert recipient.email == "ada@example.com"
        assert "Photosynthesis" in subject
        assert result.token.code in body
        assert f"http://quiz.test/attempt/{result.token.code}" in body
        assert "10 minutes" in body

    @pytest.mark.asyncio
    async def test_issue_is_idempotent_while_token_valid(
        self, db_session, make_issuer, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        first = await issuer.issue(completed_set.id, participant.id, teacher_id)
        clock.advance(days=2)

        second = await issuer.issue(completed_set.id, participant.id, teacher_id)

        assert second.reused is True
        assert second.token.code == first.token.code
        reused = await EventStore(db_session).count_events(
            entity_id=first.token.id, event_type=EventType.ACCESS_REUSED
        )
        assert reused == 1

    @pytest.mark.asyncio
    async def test_issue_after_expiry_mints_new_code(
        self, db_session, make_issuer, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        first = await issuer.issue(completed_set.id, participant.id, teacher_id)
        clock.advance(days=8)

        second = await issuer.issue(completed_set.id, participant.id, teacher_id)

        assert second.reused is False
        assert second.token.code != first.token.code

    @pytest.mark.asyncio
    async def test_custom_ttl(self, db_session, make_issuer, clock, completed_set, participant, teacher_id):
        issuer = make_issuer(db_session)
        result = await issuer.issue(completed_set.id, participant.id, teacher_id, ttl=timedelta(hours=1))
        assert ensure_utc(result.token.expires_at) == clock.now + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_pending_set_is_not_ready(self, db_session, make_issuer, pending_set, participant, teacher_id):
        issuer = make_issuer(db_session)
        with pytest.raises(NotReady):
            await issuer.issue(pending_set.id, participant.id, teacher_id)

    @pytest.mark.asyncio
    async def test_other_teachers_set_is_not_found(self, db_session, make_issuer, completed_set, participant):
        issuer = make_issuer(db_session)
        with pytest.raises(NotFound):
            await issuer.issue(completed_set.id, participant.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_other_teachers_participant_is_not_found(
        self, db_session, make_issuer, completed_set, teacher_id
    ):
        stranger = await Roster(db_session).add(uuid.uuid4(), "Grace Hopper", "grace@example.com")
        issuer = make_issuer(db_session)
        with pytest.raises(NotFound):
            await issuer.issue(completed_set.id, stranger.id, teacher_id)

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_token(
        self, db_session, make_issuer, notifier, completed_set, participant, teacher_id
    ):
        notifier.fail = True
        issuer = make_issuer(db_session)

        result = await issuer.issue(completed_set.id, participant.id, teacher_id)

        assert result.notification_status == "failed"
        assert result.notification.detail == "mailbox unavailable"
        stored = await issuer.redeem(result.token.code)
        assert stored.id == result.token.id
        failures = await EventStore(db_session).count_events(
            entity_id=result.token.id, event_type=EventType.NOTIFICATION_FAILED
        )
        assert failures == 1

    @pytest.mark.asyncio
    async def test_notifier_exception_reported_as_failure(
        self, db_session, make_issuer, notifier, completed_set, participant, teacher_id
    ):
        async def broken(*args):
            raise RuntimeError("smtp down")

        notifier.send = broken
        issuer = make_issuer(db_session)

        result = await issuer.issue(completed_set.id, participant.id, teacher_id)

        assert result.notification_status == "failed"
        assert "smtp down" in result.notification.detail

    @pytest.mark.asyncio
    async def test_notify_false_skips_delivery(
        self, db_session, make_issuer, notifier, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        result = await issuer.issue(completed_set.id, participant.id, teacher_id, notify=False)
        assert result.notification_status == "skipped"
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_concurrent_issues_share_one_token(
        self, session_maker, make_issuer, completed_set, participant, teacher_id
    ):
        async def issue():
            async with session_maker() as session:
                return await make_issuer(session).issue(completed_set.id, participant.id, teacher_id, notify=False)

        first, second = await asyncio.gather(issue(), issue())

        assert first.token.code == second.token.code
        assert sorted([first.reused, second.reused]) == [False, True]
        async with session_maker() as session:
            count = await session.scalar(
                select(func.count(AccessToken.id)).where(AccessToken.question_set_id == completed_set.id)
            )
        assert count == 1


class TestShare:
    @pytest.mark.asyncio
    async def test_share_with_several_participants(
        self, db_session, make_issuer, notifier, completed_set, participant, second_participant, teacher_id
    ):
        issuer = make_issuer(db_session)

        results = await issuer.share(
            completed_set.id, [participant.id, second_participant.id, participant.id], teacher_id
        )

        assert [r.participant.id for r in results] == [participant.id, second_participant.id]
        assert len({r.token.code for r in results}) == 2
        assert len(notifier.sent) == 2

    @pytest.mark.asyncio
    async def test_share_with_unknown_participant_issues_nothing(
        self, db_session, make_issuer, notifier, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        missing = uuid.uuid4()

        with pytest.raises(NotFound) as exc_info:
            await issuer.share(completed_set.id, [participant.id, missing], teacher_id)

        assert exc_info.value.context["participant_ids"] == [str(missing)]
        assert notifier.sent == []
        assert await issuer.find_valid_token(participant.id, completed_set.id) is None


class TestRedeem:
    @pytest.mark.asyncio
    async def test_redeem_valid_code(self, db_session, make_issuer, completed_set, participant, teacher_id):
        issuer = make_issuer(db_session)
        issued = await issuer.issue(completed_set.id, participant.id, teacher_id)

        token = await issuer.redeem(issued.token.code)

        assert token.participant_id == participant.id
        assert token.consumed is False

    @pytest.mark.asyncio
    async def test_unknown_code(self, db_session, make_issuer):
        with pytest.raises(NotFound):
            await make_issuer(db_session).redeem("not-a-real-code")

    @pytest.mark.asyncio
    async def test_expired_after_seven_days(
        self, db_session, make_issuer, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        issued = await issuer.issue(completed_set.id, participant.id, teacher_id)
        clock.advance(days=8)

        with pytest.raises(TokenExpired):
            await issuer.redeem(issued.token.code)

    @pytest.mark.asyncio
    async def test_valid_until_the_expiry_instant(
        self, db_session, make_issuer, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        issued = await issuer.issue(completed_set.id, participant.id, teacher_id)
        clock.advance(days=7)

        token = await issuer.redeem(issued.token.code)
        assert token.id == issued.token.id

    @pytest.mark.asyncio
    async def test_consumed_wins_over_expired(
        self, db_session, make_issuer, clock, completed_set, participant, teacher_id
    ):
        issuer = make_issuer(db_session)
        issued = await issuer.issue(completed_set.id, participant.id, teacher_id)
        issued.token.consumed = True
        issued.token.used_at = clock.now
        await db_session.commit()
        clock.advance(days=30)

        with pytest.raises(AlreadyUsed):
            await issuer.redeem(issued.token.code)


class TestRoster:
    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, teacher_id, participant):
        with pytest.raises(Conflict):
            await Roster(db_session).add(teacher_id, "Ada Again", "ADA@example.com")

    @pytest.mark.asyncio
    async def test_same_email_for_other_teacher(self, db_session, participant):
        other = await Roster(db_session).add(uuid.uuid4(), "Ada Lovelace", "ada@example.com")
        assert other.id != participant.id

    @pytest.mark.asyncio
    async def test_list_is_scoped_and_sorted(self, db_session, teacher_id, participant, second_participant):
        await Roster(db_session).add(uuid.uuid4(), "Someone Else", "else@example.com")
        names = [p.name for p in await Roster(db_session).list(teacher_id)]
        assert names == ["Ada Lovelace", "Alan Turing"]
