"""
Job worker client.

The worker runs outside this process. We talk to it twice: once to start a job
(bounded by a short timeout) and, best-effort, to read a job's live status for
the polling endpoint. Results always come back through the webhook.

The client is built once at startup (see main.lifespan) and handed to the
orchestrator; nothing here is a module-level singleton.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import httpx

from assessment_engine.kernel.errors import UpstreamUnavailable
from assessment_engine.logging_config import get_logger

logger = get_logger(__name__)

WORKFLOW_TYPE = "MCQGenerationWorkflow"


@dataclass(frozen=True)
class JobRequest:
    """Everything the worker needs to produce questions for one set."""

    job_id: str
    question_set_id: str
    download_ref: str
    question_count: int
    callback_url: str


@dataclass(frozen=True)
class JobAck:
    accepted: bool
    detail: Optional[str] = None


class LiveJobStatus(str, Enum):
    """Worker status mapped into our own closed vocabulary."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"


_WORKER_STATUS_MAP = {
    "RUNNING": LiveJobStatus.RUNNING,
    "PENDING": LiveJobStatus.RUNNING,
    "SCHEDULED": LiveJobStatus.RUNNING,
    "CONTINUED_AS_NEW": LiveJobStatus.RUNNING,
    "COMPLETED": LiveJobStatus.COMPLETED,
    "FAILED": LiveJobStatus.FAILED,
    "TERMINATED": LiveJobStatus.FAILED,
    "TIMED_OUT": LiveJobStatus.FAILED,
    "CANCELED": LiveJobStatus.FAILED,
    "CANCELLED": LiveJobStatus.FAILED,
}


def map_worker_status(raw: Optional[str]) -> LiveJobStatus:
    """Map a worker status string (any case, optional WORKFLOW_EXECUTION_STATUS_ prefix)."""
    if not raw:
        return LiveJobStatus.UNKNOWN
    key = str(raw).strip().upper().removeprefix("WORKFLOW_EXECUTION_STATUS_")
    return _WORKER_STATUS_MAP.get(key, LiveJobStatus.UNKNOWN)


class JobWorker(Protocol):
    async def submit_job(self, request: JobRequest) -> JobAck:
        """Start a job. Raises UpstreamUnavailable if the worker cannot be reached."""
        ...

    async def describe(self, job_id: str) -> LiveJobStatus:
        ...


class HttpJobWorker:
    """
    Job worker reached over its HTTP gateway.

    POST {base}/workflows            start a workflow
    GET  {base}/workflows/{job_id}   {"status": "RUNNING" | "COMPLETED" | ...}
    """

    def __init__(
        self,
        base_url: str,
        task_queue: str = "mcq-queue",
        api_key: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.task_queue = task_queue
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
        )

    async def submit_job(self, request: JobRequest) -> JobAck:
        body = {
            "workflow_type": WORKFLOW_TYPE,
            "task_queue": self.task_queue,
            "workflow_id": request.job_id,
            "args": [
                {
                    "url": request.download_ref,
                    "num_questions": request.question_count,
                    "mcq_set_id": request.question_set_id,
                    "webhook_url": request.callback_url,
                }
            ],
        }
        try:
            response = await self._client.post("/workflows", json=body)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            logger.warning("Job worker unreachable: %s", e, extra={"job_id": request.job_id})
            raise UpstreamUnavailable("Job worker is unreachable; try again later", job_id=request.job_id) from e

        if response.status_code >= 500:
            logger.warning(
                "Job worker error %s", response.status_code, extra={"job_id": request.job_id}
            )
            raise UpstreamUnavailable(
                f"Job worker returned {response.status_code}; try again later", job_id=request.job_id
            )
        if response.status_code >= 400:
            return JobAck(accepted=False, detail=_error_detail(response))
        return JobAck(accepted=True)

    async def describe(self, job_id: str) -> LiveJobStatus:
        try:
            response = await self._client.get(f"/workflows/{job_id}")
        except (httpx.TimeoutException, httpx.TransportError) as e:
            logger.info("Live status unavailable for %s: %s", job_id, e)
            return LiveJobStatus.UNKNOWN
        if response.status_code != 200:
            return LiveJobStatus.UNKNOWN
        try:
            data = response.json()
        except ValueError:
            return LiveJobStatus.UNKNOWN
        return map_worker_status(data.get("status") if isinstance(data, dict) else None)

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("detail") or data.get("error") or data.get("message") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"
