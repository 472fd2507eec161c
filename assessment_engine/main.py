"""
Assessment Lifecycle Engine

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from assessment_engine.api.deps import DbSession
from assessment_engine.api.middleware.rate_limit import RateLimitMiddleware
from assessment_engine.api.middleware.request_id import RequestIdMiddleware
from assessment_engine.api.v1 import router as api_v1_router
from assessment_engine.config import get_settings
from assessment_engine.database import close_db, init_db
from assessment_engine.engines.access.notifier import build_notifier
from assessment_engine.engines.generation.job_worker import HttpJobWorker
from assessment_engine.kernel.errors import EngineError
from assessment_engine.logging_config import configure_logging, get_logger
from assessment_engine.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Builds the job worker and notifier clients once and closes them on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    app.state.job_worker = HttpJobWorker(
        base_url=settings.job_worker_url,
        task_queue=settings.job_worker_task_queue,
        api_key=settings.job_worker_api_key,
        timeout=settings.job_worker_timeout_seconds,
    )
    app.state.notifier = build_notifier(settings)

    yield

    logger.info("Shutting down...")
    await app.state.job_worker.aclose()
    await app.state.notifier.aclose()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Assessment Lifecycle Engine

    Turns an uploaded document into a graded, securely delivered quiz.

    ## Features

    - **Generation**: dispatch question generation to the job worker and absorb its webhook
    - **Sharing**: single-use, time-limited access codes per participant
    - **Attempts**: timed quiz sessions with exactly one graded submission
    - **Scoring**: negative marking (+1 / -0.25 / 0), floored at zero
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: the last one added is outermost.
# CORS must be outermost so 429s and errors from inner middleware carry CORS headers.
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]

app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> dict:
    """CORS headers for error responses (500s often bypass the CORS middleware)."""
    origin = request.headers.get("origin") or ""
    allow_origin = origin if origin in _cors_origins else _cors_origins[0]
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }


def _error_headers(request: Request) -> dict:
    headers = _cors_headers(request)
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    """Typed engine errors: stable code plus HTTP status."""
    if exc.status_code >= 500:
        logger.warning("%s: %s", exc.code, exc.detail, extra=exc.context)
    content = exc.to_dict()
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=_error_headers(request))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Ensure 401/404 etc. responses have CORS headers."""
    headers = _error_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    content = {"detail": exc.detail}
    req_id = headers.get("X-Request-ID")
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    headers = _error_headers(request)
    content = {"detail": "Validation error", "code": "invalid_request", "errors": errors}
    if "X-Request-ID" in headers:
        content["request_id"] = headers["X-Request-ID"]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Unexpected exceptions. CORS headers added so the browser does not hide the 500."""
    logger.exception("Unhandled exception: %s", exc)
    headers = _error_headers(request)
    req_id = headers.get("X-Request-ID")
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__, "request_id": req_id}
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=headers,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DbSession):
    """Check application health, including a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check database ping failed: %s", e)
        await db.rollback()
        return HealthResponse(status="degraded", version=settings.version, database="unavailable")
    return HealthResponse(status="ok", version=settings.version, database="connected")


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "assessment_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
