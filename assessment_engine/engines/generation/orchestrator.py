"""
Generation Orchestrator - drives a QuestionSet through its lifecycle.

Three independent triggers touch a set: the start request (dispatch), the
worker callback (on_webhook) and the status poll (poll_status). Only the first
two write, and they write exclusively through StateMachine.transition(), so a
late or duplicate callback can never resurrect a set that moved on.

Dispatch claims the set (-> generating) and commits before calling the worker,
so two concurrent dispatches cannot both reach the worker. If the worker is
unreachable or refuses, the claim is rolled back to the pre-call status.
If the process dies between the claim and that rollback the set stays
generating; poll_status reports it as dispatch_unconfirmed once the worker
still does not know the job after the dispatch grace period.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from assessment_engine.engines.generation.documents import DocumentLocator
from assessment_engine.engines.generation.job_worker import JobRequest, JobWorker, LiveJobStatus
from assessment_engine.engines.generation.outcome import GenerationFailure, GenerationSuccess, parse_webhook
from assessment_engine.kernel.errors import Conflict, NotFound, UpstreamRejected
from assessment_engine.kernel.events.event_store import EventStore
from assessment_engine.kernel.models import EventType, Question, QuestionSet, QuestionSetStatus, ensure_utc, utcnow
from assessment_engine.logging_config import get_logger
from assessment_engine.orchestration.state_machine import StateMachine

logger = get_logger(__name__)

DEFAULT_DISPATCH_GRACE = timedelta(minutes=2)


@dataclass(frozen=True)
class DispatchReceipt:
    question_set_id: uuid.UUID
    job_id: str
    status: QuestionSetStatus


@dataclass(frozen=True)
class WebhookAck:
    """What the worker gets back. applied=False means the callback was a no-op."""

    question_set_id: uuid.UUID
    applied: bool
    status: QuestionSetStatus
    total_questions: int = 0
    discarded: int = 0
    message: str = ""


@dataclass(frozen=True)
class GenerationStatus:
    """Read-only projection for the polling endpoint."""

    question_set_id: uuid.UUID
    status: QuestionSetStatus
    job_id: Optional[str]
    total_questions: int
    questions_generated: int
    failure_reason: Optional[str]
    updated_at: Optional[datetime]
    live_status: Optional[LiveJobStatus] = None
    dispatched_at: Optional[datetime] = None
    # Generating, past the grace period, and the worker does not know the job
    dispatch_unconfirmed: bool = False

    @property
    def webhook_overdue(self) -> bool:
        """Worker reports a terminal state but the callback has not landed yet."""
        return self.status is QuestionSetStatus.GENERATING and self.live_status in (
            LiveJobStatus.COMPLETED,
            LiveJobStatus.FAILED,
        )


class GenerationOrchestrator:
    """
    Owns every QuestionSet status transition.

    Usage:
        orchestrator = GenerationOrchestrator(session, job_worker, documents, callback_url)
        receipt = await orchestrator.dispatch(set_id, teacher_id, question_count=10)
    """

    def __init__(
        self,
        session: AsyncSession,
        job_worker: JobWorker,
        documents: DocumentLocator,
        callback_url: str,
        clock: Callable[[], datetime] = utcnow,
        dispatch_grace: timedelta = DEFAULT_DISPATCH_GRACE,
    ):
        self.session = session
        self.job_worker = job_worker
        self.documents = documents
        self.callback_url = callback_url
        self.clock = clock
        self.dispatch_grace = dispatch_grace
        self.state_machine = StateMachine(session)
        self.event_store = EventStore(session)

    # ------------------------------------------------------------------
    # Question sets
    # ------------------------------------------------------------------

    async def create_question_set(
        self,
        owner_id: uuid.UUID,
        name: str,
        source_document_ref: str,
        description: Optional[str] = None,
    ) -> QuestionSet:
        """Create a pending set for a source document."""
        question_set = QuestionSet(
            owner_id=owner_id,
            name=name.strip(),
            description=(description or "").strip() or None,
            source_document_ref=source_document_ref,
            status=QuestionSetStatus.PENDING,
            total_questions=0,
        )
        self.session.add(question_set)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.QUESTION_SET_CREATED,
            entity_type="question_set",
            entity_id=question_set.id,
            actor_id=owner_id,
            payload={"name": question_set.name, "source_document_ref": source_document_ref},
        )
        await self.session.commit()
        await self.session.refresh(question_set)
        return question_set

    async def list_question_sets(self, owner_id: uuid.UUID) -> List[Tuple[QuestionSet, int]]:
        """A teacher's sets, newest first, with their stored question counts."""
        question_count = (
            select(func.count(Question.id))
            .where(Question.question_set_id == QuestionSet.id)
            .correlate(QuestionSet)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(QuestionSet, question_count)
            .where(QuestionSet.owner_id == owner_id)
            .order_by(QuestionSet.created_at.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_question_set(
        self,
        question_set_id: uuid.UUID,
        owner_id: uuid.UUID,
        with_questions: bool = False,
    ) -> QuestionSet:
        """Load a set owned by owner_id. Another teacher's set looks like a missing one."""
        query = select(QuestionSet).where(
            QuestionSet.id == question_set_id,
            QuestionSet.owner_id == owner_id,
        )
        if with_questions:
            query = query.options(selectinload(QuestionSet.questions))
        result = await self.session.execute(query.execution_options(populate_existing=True))
        question_set = result.scalar_one_or_none()
        if question_set is None:
            raise NotFound("Question set not found", question_set_id=str(question_set_id))
        return question_set

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    def new_job_id(self, question_set_id: uuid.UUID) -> str:
        """Unique per attempt so retried dispatches are distinguishable in worker logs."""
        return f"mcq-generation-{question_set_id}-{int(self.clock().timestamp() * 1000)}"

    async def dispatch(
        self,
        question_set_id: uuid.UUID,
        owner_id: uuid.UUID,
        question_count: int,
    ) -> DispatchReceipt:
        """
        Start generation for a pending or failed set.

        Raises:
            NotFound: set missing or owned by someone else
            Conflict: set is already generating or already completed
            UpstreamUnavailable: worker unreachable (status unchanged, retryable)
            UpstreamRejected: worker refused the job (status unchanged)
        """
        question_set = await self.get_question_set(question_set_id, owner_id)
        prior_status = QuestionSetStatus(question_set.status)
        prior_job_id = question_set.job_id
        prior_fields = {
            "job_id": prior_job_id,
            "requested_questions": question_set.requested_questions,
            "failure_reason": question_set.failure_reason,
            "dispatched_at": question_set.dispatched_at,
        }

        if prior_status is QuestionSetStatus.GENERATING:
            raise Conflict("Question set is already being generated", question_set_id=str(question_set_id))
        if prior_status is QuestionSetStatus.COMPLETED:
            raise Conflict("Question set is already completed", question_set_id=str(question_set_id))

        download_ref = self.documents.download_reference(question_set.source_document_ref)
        job_id = self.new_job_id(question_set_id)

        claimed = await self.state_machine.transition(
            question_set_id,
            "dispatch",
            prior_status,
            QuestionSetStatus.GENERATING,
            job_id=job_id,
            requested_questions=question_count,
            failure_reason=None,
            dispatched_at=self.clock(),
        )
        if not claimed:
            await self.session.rollback()
            raise Conflict("Question set is already being generated", question_set_id=str(question_set_id))
        await self.session.commit()

        request = JobRequest(
            job_id=job_id,
            question_set_id=str(question_set_id),
            download_ref=download_ref,
            question_count=question_count,
            callback_url=self.callback_url,
        )
        try:
            ack = await self.job_worker.submit_job(request)
        except Exception as exc:
            await self._release_claim(question_set_id, owner_id, job_id, prior_status, prior_fields, str(exc))
            raise

        if not ack.accepted:
            detail = ack.detail or "Job worker rejected the job"
            await self._release_claim(question_set_id, owner_id, job_id, prior_status, prior_fields, detail)
            raise UpstreamRejected(detail, question_set_id=str(question_set_id))

        await self.event_store.log(
            event_type=EventType.GENERATION_DISPATCHED,
            entity_type="question_set",
            entity_id=question_set_id,
            actor_id=owner_id,
            payload={
                "job_id": job_id,
                "question_count": question_count,
                "previous_status": prior_status,
                "previous_job_id": prior_job_id,
            },
        )
        await self.session.commit()

        logger.info(
            "Generation dispatched",
            extra={"question_set_id": str(question_set_id), "job_id": job_id, "question_count": question_count},
        )
        return DispatchReceipt(
            question_set_id=question_set_id,
            job_id=job_id,
            status=QuestionSetStatus.GENERATING,
        )

    async def _release_claim(
        self,
        question_set_id: uuid.UUID,
        owner_id: uuid.UUID,
        job_id: str,
        prior_status: QuestionSetStatus,
        prior_fields: Dict[str, Any],
        reason: str,
    ) -> None:
        """Put the set back exactly as dispatch found it."""
        await self.session.rollback()
        released = await self.state_machine.transition(
            question_set_id,
            "dispatch",
            QuestionSetStatus.GENERATING,
            prior_status,
            expected_job_id=job_id,
            **prior_fields,
        )
        await self.event_store.log(
            event_type=EventType.GENERATION_DISPATCH_FAILED,
            entity_type="question_set",
            entity_id=question_set_id,
            actor_id=owner_id,
            payload={"job_id": job_id, "reason": reason, "released": released},
        )
        await self.session.commit()
        logger.warning(
            "Generation dispatch failed: %s",
            reason,
            extra={"question_set_id": str(question_set_id), "job_id": job_id, "restored_status": prior_status.value},
        )

    # ------------------------------------------------------------------
    # on_webhook
    # ------------------------------------------------------------------

    async def on_webhook(self, payload: Any) -> WebhookAck:
        """
        Apply a worker callback. Safe to call any number of times.

        The set is resolved by the id in the payload. Callbacks for sets that
        are already terminal, were never dispatched, or belong to a superseded
        job id are acknowledged and ignored.

        Raises:
            ValidationFailure: payload has no usable set id
            NotFound: no such set
        """
        parsed = parse_webhook(payload)
        set_id = parsed.set_id
        outcome = parsed.outcome

        question_set = await self.session.get(QuestionSet, set_id, populate_existing=True)
        if question_set is None:
            raise NotFound("Question set not found", question_set_id=str(set_id))

        status = QuestionSetStatus(question_set.status)
        current_job_id = question_set.job_id

        if status.is_terminal:
            return await self._ignore(set_id, status, parsed.job_id, "Question set already finished")
        if status is QuestionSetStatus.PENDING:
            return await self._ignore(set_id, status, parsed.job_id, "Question set was never dispatched")
        if parsed.job_id and parsed.job_id != current_job_id:
            return await self._ignore(set_id, status, parsed.job_id, "Callback belongs to a superseded job")

        try:
            if isinstance(outcome, GenerationSuccess):
                return await self._complete(set_id, current_job_id, outcome)
            return await self._fail(set_id, current_job_id, outcome)
        except Exception:
            logger.exception("Webhook processing failed", extra={"question_set_id": str(set_id)})
            await self.session.rollback()
            await self._mark_failed_best_effort(set_id, current_job_id)
            raise

    async def _complete(
        self,
        set_id: uuid.UUID,
        job_id: Optional[str],
        outcome: GenerationSuccess,
    ) -> WebhookAck:
        # Status flip and question rows commit together or not at all
        total = len(outcome.questions)
        won = await self.state_machine.transition(
            set_id,
            "webhook",
            QuestionSetStatus.GENERATING,
            QuestionSetStatus.COMPLETED,
            expected_job_id=job_id,
            total_questions=total,
            failure_reason=None,
        )
        if not won:
            await self.session.rollback()
            return await self._ignore(set_id, None, job_id, "Question set already finished")

        self.session.add_all(
            Question(
                question_set_id=set_id,
                position=position,
                text=candidate.question,
                option_a=candidate.options[0],
                option_b=candidate.options[1],
                option_c=candidate.options[2],
                option_d=candidate.options[3],
                correct_label=candidate.correct_label,
            )
            for position, candidate in enumerate(outcome.questions)
        )
        await self.event_store.log(
            event_type=EventType.GENERATION_COMPLETED,
            entity_type="question_set",
            entity_id=set_id,
            payload={"job_id": job_id, "total_questions": total, "discarded": outcome.discarded},
        )
        await self.session.commit()

        if outcome.discarded:
            logger.warning(
                "Discarded %d malformed question(s)",
                outcome.discarded,
                extra={"question_set_id": str(set_id), "job_id": job_id},
            )
        logger.info(
            "Generation completed",
            extra={"question_set_id": str(set_id), "job_id": job_id, "total_questions": total},
        )
        return WebhookAck(
            question_set_id=set_id,
            applied=True,
            status=QuestionSetStatus.COMPLETED,
            total_questions=total,
            discarded=outcome.discarded,
            message=f"Stored {total} questions",
        )

    async def _fail(
        self,
        set_id: uuid.UUID,
        job_id: Optional[str],
        outcome: GenerationFailure,
    ) -> WebhookAck:
        won = await self.state_machine.transition(
            set_id,
            "webhook",
            QuestionSetStatus.GENERATING,
            QuestionSetStatus.FAILED,
            expected_job_id=job_id,
            failure_reason=outcome.reason,
        )
        if not won:
            await self.session.rollback()
            return await self._ignore(set_id, None, job_id, "Question set already finished")

        await self.event_store.log(
            event_type=EventType.GENERATION_FAILED,
            entity_type="question_set",
            entity_id=set_id,
            payload={"job_id": job_id, "reason": outcome.reason, "discarded": outcome.discarded},
        )
        await self.session.commit()

        logger.warning(
            "Generation failed: %s",
            outcome.reason,
            extra={"question_set_id": str(set_id), "job_id": job_id},
        )
        return WebhookAck(
            question_set_id=set_id,
            applied=True,
            status=QuestionSetStatus.FAILED,
            discarded=outcome.discarded,
            message=outcome.reason,
        )

    async def _ignore(
        self,
        set_id: uuid.UUID,
        status: Optional[QuestionSetStatus],
        job_id: Optional[str],
        message: str,
    ) -> WebhookAck:
        if status is None:
            current = await self.session.scalar(select(QuestionSet.status).where(QuestionSet.id == set_id))
            status = QuestionSetStatus(current)
        await self.event_store.log(
            event_type=EventType.WEBHOOK_IGNORED,
            entity_type="question_set",
            entity_id=set_id,
            payload={"job_id": job_id, "status": status, "reason": message},
        )
        await self.session.commit()
        logger.info(
            "Webhook ignored: %s",
            message,
            extra={"question_set_id": str(set_id), "job_id": job_id, "status": status.value},
        )
        return WebhookAck(question_set_id=set_id, applied=False, status=status, message=message)

    async def _mark_failed_best_effort(self, set_id: uuid.UUID, job_id: Optional[str]) -> None:
        try:
            await self.state_machine.transition(
                set_id,
                "webhook",
                QuestionSetStatus.GENERATING,
                QuestionSetStatus.FAILED,
                expected_job_id=job_id,
                failure_reason="Internal error while storing generated questions",
            )
            await self.session.commit()
        except Exception:
            logger.exception("Could not mark question set failed", extra={"question_set_id": str(set_id)})
            await self.session.rollback()

    # ------------------------------------------------------------------
    # poll_status
    # ------------------------------------------------------------------

    async def poll_status(self, question_set_id: uuid.UUID, owner_id: uuid.UUID) -> GenerationStatus:
        """
        Stored status plus, while generating, the worker's live view.

        Never writes: a live "completed" only flags the callback as overdue, and
        a job the worker does not know past the grace period is only flagged
        as dispatch_unconfirmed.
        """
        question_set = await self.get_question_set(question_set_id, owner_id)
        status = QuestionSetStatus(question_set.status)
        questions_generated = await self.session.scalar(
            select(func.count(Question.id)).where(Question.question_set_id == question_set_id)
        )

        live_status: Optional[LiveJobStatus] = None
        if status is QuestionSetStatus.GENERATING and question_set.job_id:
            try:
                live_status = await self.job_worker.describe(question_set.job_id)
            except Exception as e:
                logger.info("Live status check failed: %s", e, extra={"question_set_id": str(question_set_id)})
                live_status = LiveJobStatus.UNKNOWN

        dispatched_at = ensure_utc(question_set.dispatched_at)
        dispatch_unconfirmed = (
            live_status is LiveJobStatus.UNKNOWN
            and dispatched_at is not None
            and self.clock() - dispatched_at > self.dispatch_grace
        )
        if dispatch_unconfirmed:
            logger.warning(
                "Generating set is unknown to the worker",
                extra={"question_set_id": str(question_set_id), "job_id": question_set.job_id},
            )

        return GenerationStatus(
            question_set_id=question_set.id,
            status=status,
            job_id=question_set.job_id,
            total_questions=question_set.total_questions,
            questions_generated=questions_generated or 0,
            failure_reason=question_set.failure_reason,
            updated_at=question_set.updated_at,
            live_status=live_status,
            dispatched_at=dispatched_at,
            dispatch_unconfirmed=dispatch_unconfirmed,
        )
