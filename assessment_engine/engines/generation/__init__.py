"""
Generation - question set lifecycle, job worker client and webhook parsing.
"""

from assessment_engine.engines.generation.documents import DocumentLocator, UrlDocumentLocator
from assessment_engine.engines.generation.job_worker import (
    HttpJobWorker,
    JobAck,
    JobRequest,
    JobWorker,
    LiveJobStatus,
    map_worker_status,
)
from assessment_engine.engines.generation.orchestrator import (
    DispatchReceipt,
    GenerationOrchestrator,
    GenerationStatus,
    WebhookAck,
)
from assessment_engine.engines.generation.outcome import (
    CandidateQuestion,
    GenerationFailure,
    GenerationOutcome,
    GenerationSuccess,
    ParsedWebhook,
    parse_webhook,
)

__all__ = [
    "CandidateQuestion",
    "DispatchReceipt",
    "DocumentLocator",
    "GenerationFailure",
    "GenerationOrchestrator",
    "GenerationOutcome",
    "GenerationStatus",
    "GenerationSuccess",
    "HttpJobWorker",
    "JobAck",
    "JobRequest",
    "JobWorker",
    "LiveJobStatus",
    "ParsedWebhook",
    "UrlDocumentLocator",
    "WebhookAck",
    "map_worker_status",
    "parse_webhook",
]
