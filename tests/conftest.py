"""
Pytest fixtures for the assessment engine tests.

Every test gets its own file-backed SQLite database so that separate sessions
(one per concurrent actor) really share one store and contend on its lock.
"""

import os
import uuid
from typing import AsyncGenerator

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.database import build_engine, build_session_maker
from assessment_engine.engines.access.token_issuer import TokenIssuer
from assessment_engine.engines.attempts.session_manager import AttemptSessionManager
from assessment_engine.engines.generation.documents import UrlDocumentLocator
from assessment_engine.engines.generation.orchestrator import GenerationOrchestrator
from assessment_engine.engines.scoring.grader import ScoringEngine
from assessment_engine.kernel.models import (
    Base,
    Participant,
    QuestionSet,
    QuestionSetStatus,
)

from tests.support import (
    CALLBACK_URL,
    FakeJobWorker,
    FakeNotifier,
    FrozenClock,
    make_questions,
)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'engine.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def job_worker() -> FakeJobWorker:
    return FakeJobWorker()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def teacher_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_orchestrator(job_worker, clock):
    def _make(session: AsyncSession) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            session,
            job_worker=job_worker,
            documents=UrlDocumentLocator("http://content.test"),
            callback_url=CALLBACK_URL,
            clock=clock,
        )

    return _make


@pytest.fixture
def make_issuer(notifier, clock):
    def _make(session: AsyncSession) -> TokenIssuer:
        return TokenIssuer(
            session,
            notifier=notifier,
            attempt_base_url="http://quiz.test/attempt",
            clock=clock,
        )

    return _make


@pytest.fixture
def make_session_manager(make_issuer, clock):
    def _make(session: AsyncSession) -> AttemptSessionManager:
        return AttemptSessionManager(
            session,
            issuer=make_issuer(session),
            scoring_engine=ScoringEngine(),
            clock=clock,
        )

    return _make


@pytest_asyncio.fixture
async def pending_set(db_session: AsyncSession, teacher_id: uuid.UUID) -> QuestionSet:
    question_set = QuestionSet(
        owner_id=teacher_id,
        name="Cell Biology",
        source_document_ref="uploads/cell-biology.pdf",
        status=QuestionSetStatus.PENDING,
    )
    db_session.add(question_set)
    await db_session.commit()
    return question_set


@pytest_asyncio.fixture
async def completed_set(db_session: AsyncSession, teacher_id: uuid.UUID) -> QuestionSet:
    """A completed set with 10 questions."""
    question_set = QuestionSet(
        owner_id=teacher_id,
        name="Photosynthesis",
        source_document_ref="uploads/photosynthesis.pdf",
        status=QuestionSetStatus.COMPLETED,
        total_questions=10,
        requested_questions=10,
        job_id="mcq-generation-fixture",
    )
    db_session.add(question_set)
    await db_session.flush()
    db_session.add_all(make_questions(question_set.id, 10))
    await db_session.commit()
    return question_set


@pytest_asyncio.fixture
async def participant(db_session: AsyncSession, teacher_id: uuid.UUID) -> Participant:
    student = Participant(teacher_id=teacher_id, name="Ada Lovelace", email="ada@example.com")
    db_session.add(student)
    await db_session.commit()
    return student


@pytest_asyncio.fixture
async def second_participant(db_session: AsyncSession, teacher_id: uuid.UUID) -> Participant:
    student = Participant(teacher_id=teacher_id, name="Alan Turing", email="alan@example.com")
    db_session.add(student)
    await db_session.commit()
    return student
