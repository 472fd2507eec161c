"""
Token Issuer - mints and redeems single-use access tokens.

A token grants one participant one attempt at one completed question set.
Issuance is idempotent per (participant, set) while a valid token exists.
Concurrent issues for one participant are serialized on the participant row.
Redemption only validates; the token is consumed by the attempt session
manager in the same transaction that stores the graded result.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from html import escape
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.engines.access.notifier import DeliveryResult, Notifier, Recipient
from assessment_engine.kernel.errors import AlreadyUsed, NotFound, NotReady, TokenExpired
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import (
    AccessToken,
    EventType,
    Participant,
    QuestionSet,
    QuestionSetStatus,
    ensure_utc,
    utcnow,
)
from assessment_engine.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(days=7)
CODE_BYTES = 24


def generate_code() -> str:
    """URL-safe, unguessable access code."""
    return secrets.token_urlsafe(CODE_BYTES)


@dataclass(frozen=True)
class IssueResult:
    """Token existence and message delivery are reported separately."""

    token: AccessToken
    participant: Participant
    reused: bool
    notification: Optional[DeliveryResult] = None

    @property
    def notification_status(self) -> str:
        if self.notification is None:
            return "skipped"
        return self.notification.status


class TokenIssuer:
    """
    Issues and validates access tokens.

    Usage:
        issuer = TokenIssuer(session, notifier, attempt_base_url="https://quiz.example/attempt")
        result = await issuer.issue(set_id, participant_id, teacher_id)
        token = await issuer.redeem(result.token.code)
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[Notifier] = None,
        attempt_base_url: str = "",
        ttl: timedelta = DEFAULT_TTL,
        seconds_per_question: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.notifier = notifier
        self.attempt_base_url = attempt_base_url.rstrip("/")
        self.ttl = ttl
        self.seconds_per_question = seconds_per_question
        self.clock = clock
        self.event_store = EventStore(session)

    # ------------------------------------------------------------------
    # issue
    # ------------------------------------------------------------------

    async def issue(
        self,
        question_set_id: uuid.UUID,
        participant_id: uuid.UUID,
        teacher_id: uuid.UUID,
        ttl: Optional[timedelta] = None,
        notify: bool = True,
    ) -> IssueResult:
        """
        Return the participant's valid token for the set, minting one if needed.

        Raises:
            NotFound: set or participant missing, or not owned by teacher_id
            NotReady: set is not completed
        """
        question_set = await self._completed_set(question_set_id, teacher_id)
        participant = await self._participant(participant_id, teacher_id)
        return await self._issue_one(question_set, participant, teacher_id, ttl, notify)

    async def share(
        self,
        question_set_id: uuid.UUID,
        participant_ids: Sequence[uuid.UUID],
        teacher_id: uuid.UUID,
        ttl: Optional[timedelta] = None,
    ) -> List[IssueResult]:
        """Issue (or reuse) a token for each participant and send each an invitation."""
        question_set = await self._completed_set(question_set_id, teacher_id)

        unique_ids = list(dict.fromkeys(participant_ids))
        result = await self.session.execute(
            select(Participant).where(
                Participant.id.in_(unique_ids),
                Participant.teacher_id == teacher_id,
            )
        )
        participants = {p.id: p for p in result.scalars().all()}
        missing = [str(pid) for pid in unique_ids if pid not in participants]
        if missing:
            raise NotFound("Participant not found", participant_ids=missing)

        results = []
        for participant_id in unique_ids:
            results.append(
                await self._issue_one(question_set, participants[participant_id], teacher_id, ttl, notify=True)
            )
        return results

    async def _issue_one(
        self,
        question_set: QuestionSet,
        participant: Participant,
        teacher_id: uuid.UUID,
        ttl: Optional[timedelta],
        notify: bool,
    ) -> IssueResult:
        # Lock the participant row so concurrent issues for the same pair
        # queue here and the later one finds the earlier one's token.
        await self.session.execute(
            update(Participant)
            .where(Participant.id == participant.id)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        now = self.clock()
        token = await self.find_valid_token(participant.id, question_set.id, now)
        reused = token is not None

        if token is None:
            token = AccessToken(
                code=generate_code(),
                participant_id=participant.id,
                question_set_id=question_set.id,
                issued_by=teacher_id,
                expires_at=now + (ttl or self.ttl),
                consumed=False,
            )
            self.session.add(token)
            await self.session.flush()

        await self.event_store.log(
            event_type=EventType.ACCESS_REUSED if reused else EventType.ACCESS_ISSUED,
            entity_type="access_token",
            entity_id=token.id,
            actor_id=teacher_id,
            payload={
                "question_set_id": question_set.id,
                "participant_id": participant.id,
                "expires_at": ensure_utc(token.expires_at),
            },
        )
        await self.session.commit()

        logger.info(
            "Access token %s",
            "reused" if reused else "issued",
            extra={"question_set_id": str(question_set.id), "participant_id": str(participant.id)},
        )

        delivery = None
        if notify and self.notifier is not None:
            delivery = await self._notify(question_set, participant, token, teacher_id)

        return IssueResult(token=token, participant=participant, reused=reused, notification=delivery)

    async def find_valid_token(
        self,
        participant_id: uuid.UUID,
        question_set_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Optional[AccessToken]:
        """Latest unconsumed, unexpired token for the pair, if any."""
        now = now or self.clock()
        result = await self.session.execute(
            select(AccessToken)
            .where(
                AccessToken.participant_id == participant_id,
                AccessToken.question_set_id == question_set_id,
                AccessToken.consumed.is_(False),
                AccessToken.expires_at >= now,
            )
            .order_by(AccessToken.expires_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _notify(
        self,
        question_set: QuestionSet,
        participant: Participant,
        token: AccessToken,
        teacher_id: uuid.UUID,
    ) -> DeliveryResult:
        subject, body = self.invitation(question_set, participant, token)
        try:
            delivery = await self.notifier.send(Recipient(email=participant.email, name=participant.name), subject, body)
        except Exception as e:
            logger.exception("Notifier raised", extra={"participant_id": str(participant.id)})
            delivery = DeliveryResult(delivered=False, detail=str(e) or type(e).__name__)

        if not delivery.delivered:
            await self.event_store.log(
                event_type=EventType.NOTIFICATION_FAILED,
                entity_type="access_token",
                entity_id=token.id,
                actor_id=teacher_id,
                payload={"participant_id": participant.id, "detail": delivery.detail},
            )
            await self.session.commit()
            logger.warning(
                "Invitation not delivered: %s",
                delivery.detail,
                extra={"participant_id": str(participant.id), "question_set_id": str(question_set.id)},
            )
        return delivery

    def attempt_link(self, code: str) -> str:
        return f"{self.attempt_base_url}/{code}"

    def invitation(self, question_set: QuestionSet, participant: Participant, token: AccessToken) -> tuple[str, str]:
        """Subject and HTML body of the invitation email."""
        minutes = question_set.total_questions * self.seconds_per_question // 60
        expires = ensure_utc(token.expires_at).strftime("%B %d, %Y %H:%M UTC")
        link = self.attempt_link(token.code)
        subject = f"Quiz invitation: {question_set.name}"
        body = (
            f"<p>Hello {escape(participant.name)},</p>"
            f"<p>You have been invited to take <strong>{escape(question_set.name)}</strong>.</p>"
            "<ul>"
            f"<li>Questions: {question_set.total_questions}</li>"
            f"<li>Time limit: {minutes} minutes</li>"
            f"<li>Access code: <code>{escape(token.code)}</code></li>"
            f"<li>Valid until: {expires}</li>"
            "</ul>"
            f'<p><a href="{escape(link)}">Start the quiz</a></p>'
            "<p>Each code can be used once. Wrong answers subtract 0.25 marks.</p>"
        )
        return subject, body

    # ------------------------------------------------------------------
    # redeem
    # ------------------------------------------------------------------

    async def redeem(self, code: str) -> AccessToken:
        """
        Validate a code without consuming it.

        A consumed token reports AlreadyUsed even after it has expired.

        Raises:
            NotFound: no token with this code
            AlreadyUsed: token was already consumed
            TokenExpired: token is past its expiry
        """
        result = await self.session.execute(
            select(AccessToken).where(AccessToken.code == code).execution_options(populate_existing=True)
        )
        token = result.scalar_one_or_none()
        if token is None:
            raise NotFound("Invalid access code")
        if token.consumed:
            raise AlreadyUsed("This access code has already been used")
        if self.clock() > ensure_utc(token.expires_at):
            raise TokenExpired("This access code has expired")
        return token

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _completed_set(self, question_set_id: uuid.UUID, teacher_id: uuid.UUID) -> QuestionSet:
        question_set = await self.session.get(QuestionSet, question_set_id, populate_existing=True)
        if question_set is None or question_set.owner_id != teacher_id:
            raise NotFound("Question set not found", question_set_id=str(question_set_id))
        if question_set.status != QuestionSetStatus.COMPLETED:
            raise NotReady(
                "Question set is not ready to share",
                question_set_id=str(question_set_id),
                status=QuestionSetStatus(question_set.status).value,
            )
        return question_set

    async def _participant(self, participant_id: uuid.UUID, teacher_id: uuid.UUID) -> Participant:
        participant = await self.session.get(Participant, participant_id)
        if participant is None or participant.teacher_id != teacher_id:
            raise NotFound("Participant not found", participant_id=str(participant_id))
        return participant
