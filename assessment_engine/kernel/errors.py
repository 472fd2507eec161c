"""
Typed error taxonomy for the engine.

Services raise these; main.py maps them to HTTP responses so routers never
translate errors by hand. Each subclass has a stable ``code`` the UI can switch
on (e.g. to tell an expired code from an already-used one).
"""

from typing import Any, Dict

from fastapi import status


class EngineError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "engine_error"
    retryable: bool = False

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.retryable:
            body["retryable"] = True
        return body


class NotFound(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(EngineError):
    """Dispatch against a running set, or a concurrent duplicate submission."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class NotReady(EngineError):
    """Question set is not completed yet; caller should poll."""

    status_code = status.HTTP_409_CONFLICT
    code = "not_ready"


class TokenExpired(EngineError):
    status_code = status.HTTP_410_GONE
    code = "expired"


class AlreadyUsed(EngineError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_used"


class AlreadySubmitted(EngineError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_submitted"


class ValidationFailure(EngineError):
    """Malformed worker payload."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_failure"


class UpstreamUnavailable(EngineError):
    """Job worker unreachable or timed out. No state was changed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "upstream_unavailable"
    retryable = True


class UpstreamRejected(EngineError):
    """Job worker answered but refused the job. No state was changed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_rejected"

