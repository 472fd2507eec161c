"""
Test doubles and data builders shared across the test suites.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from assessment_engine.engines.access.notifier import DeliveryResult, Recipient
from assessment_engine.engines.generation.job_worker import JobAck, JobRequest, LiveJobStatus
from assessment_engine.kernel.models import Question

CALLBACK_URL = "http://engine.test/api/v1/generation/webhook"
LABELS = ("A", "B", "C", "D")


class FrozenClock:
    """Injectable clock; advance() moves it forward."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeJobWorker:
    """Records submitted jobs. Set accept/error/live to steer behaviour."""

    def __init__(self):
        self.submitted: List[JobRequest] = []
        self.described: List[str] = []
        self.accept = True
        self.error: Optional[Exception] = None
        self.live = LiveJobStatus.RUNNING

    async def submit_job(self, request: JobRequest) -> JobAck:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        self.submitted.append(request)
        if not self.accept:
            return JobAck(accepted=False, detail="task queue unavailable")
        return JobAck(accepted=True)

    async def describe(self, job_id: str) -> LiveJobStatus:
        self.described.append(job_id)
        return self.live

    async def aclose(self) -> None:
        return None


class FakeNotifier:
    def __init__(self):
        self.sent: List[tuple] = []
        self.fail = False

    async def send(self, recipient: Recipient, subject: str, body: str) -> DeliveryResult:
        self.sent.append((recipient, subject, body))
        if self.fail:
            return DeliveryResult(delivered=False, detail="mailbox unavailable")
        return DeliveryResult(delivered=True)

    async def aclose(self) -> None:
        return None


def make_questions(question_set_id: uuid.UUID, count: int) -> List[Question]:
    """Questions whose correct label cycles A, B, C, D."""
    return [
        Question(
            question_set_id=question_set_id,
            position=i,
            text=f"Question {i + 1}?",
            option_a="alpha",
            option_b="beta",
            option_c="gamma",
            option_d="delta",
            correct_label=LABELS[i % 4],
        )
        for i in range(count)
    ]


def question_payload(count: int) -> List[dict]:
    return [
        {
            "question": f"Generated question {i + 1}?",
            "options": ["one", "two", "three", "four"],
            "correctLabel": LABELS[i % 4],
        }
        for i in range(count)
    ]
