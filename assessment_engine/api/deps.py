"""
FastAPI dependencies: database session, teacher authentication and the
engine services wired to their collaborators.

The job worker and notifier are built once in the application lifespan and
kept on app.state; tests replace them through dependency overrides.
"""

from datetime import datetime, timedelta
from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.config import get_settings
from assessment_engine.database import get_db
from assessment_engine.engines.access.notifier import Notifier
from assessment_engine.engines.access.roster import Roster
from assessment_engine.engines.access.token_issuer import TokenIssuer
from assessment_engine.engines.attempts.results import ResultsReport
from assessment_engine.engines.attempts.session_manager import AttemptSessionManager
from assessment_engine.engines.generation.documents import UrlDocumentLocator
from assessment_engine.engines.generation.job_worker import JobWorker
from assessment_engine.engines.generation.orchestrator import GenerationOrchestrator
from assessment_engine.engines.scoring.grader import GradingScheme, ScoringEngine
from assessment_engine.kernel.identity.jwt import TeacherClaims, verify_access_token
from assessment_engine.kernel.models import utcnow

# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_teacher(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> TeacherClaims:
    """Verify the bearer token issued by the auth service, or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = verify_access_token(credentials.credentials)
    if not claims:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


CurrentTeacher = Annotated[TeacherClaims, Depends(get_current_teacher)]


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_job_worker(request: Request) -> JobWorker:
    return request.app.state.job_worker


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


Clock = Annotated[Callable[[], datetime], Depends(get_clock)]


def webhook_callback_url() -> str:
    settings = get_settings()
    return f"{settings.public_base_url.rstrip('/')}{settings.api_v1_prefix}/generation/webhook"


def get_orchestrator(
    db: DbSession,
    job_worker: Annotated[JobWorker, Depends(get_job_worker)],
    clock: Clock,
) -> GenerationOrchestrator:
    settings = get_settings()
    return GenerationOrchestrator(
        db,
        job_worker=job_worker,
        documents=UrlDocumentLocator(settings.content_base_url),
        callback_url=webhook_callback_url(),
        clock=clock,
        dispatch_grace=timedelta(seconds=settings.dispatch_grace_seconds),
    )


def get_token_issuer(
    db: DbSession,
    notifier: Annotated[Notifier, Depends(get_notifier)],
    clock: Clock,
) -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(
        db,
        notifier=notifier,
        attempt_base_url=settings.attempt_base_url,
        ttl=timedelta(days=settings.access_token_ttl_days),
        seconds_per_question=settings.seconds_per_question,
        clock=clock,
    )


def get_session_manager(
    db: DbSession,
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
    clock: Clock,
) -> AttemptSessionManager:
    settings = get_settings()
    return AttemptSessionManager(
        db,
        issuer=issuer,
        scoring_engine=ScoringEngine(GradingScheme.from_settings(settings)),
        seconds_per_question=settings.seconds_per_question,
        clock=clock,
    )


def get_roster(db: DbSession) -> Roster:
    return Roster(db)


def get_results_report(db: DbSession) -> ResultsReport:
    return ResultsReport(db)


Orchestrator = Annotated[GenerationOrchestrator, Depends(get_orchestrator)]
Issuer = Annotated[TokenIssuer, Depends(get_token_issuer)]
SessionManager = Annotated[AttemptSessionManager, Depends(get_session_manager)]
RosterService = Annotated[Roster, Depends(get_roster)]
ResultsService = Annotated[ResultsReport, Depends(get_results_report)]
