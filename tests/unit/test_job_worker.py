"""Unit tests for the job worker HTTP client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from assessment_engine.engines.generation.job_worker import (
    WORKFLOW_TYPE,
    HttpJobWorker,
    JobRequest,
    LiveJobStatus,
    map_worker_status,
)
from assessment_engine.kernel.errors import UpstreamUnavailable


def _request() -> JobRequest:
    return JobRequest(
        job_id="mcq-generation-set-1-1700000000000",
        question_set_id="set-1",
        download_ref="http://content.test/api/content/download?path=uploads/a.pdf",
        question_count=5,
        callback_url="http://engine.test/api/v1/generation/webhook",
    )


def _response(status_code: int, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


def _worker(**client_methods) -> HttpJobWorker:
    client = MagicMock()
    for name, mock in client_methods.items():
        setattr(client, name, mock)
    return HttpJobWorker("http://worker.test", task_queue="mcq-queue", client=client)


class TestSubmitJob:
    @pytest.mark.asyncio
    async def test_accepted(self):
        post = AsyncMock(return_value=_response(202, {"workflow_id": "x"}))
        ack = await _worker(post=post).submit_job(_request())

        assert ack.accepted is True
        path = post.call_args.args[0]
        body = post.call_args.kwargs["json"]
        assert path == "/workflows"
        assert body["workflow_type"] == WORKFLOW_TYPE
        assert body["task_queue"] == "mcq-queue"
        assert body["workflow_id"] == "mcq-generation-set-1-1700000000000"
        assert body["args"][0]["num_questions"] == 5
        assert body["args"][0]["mcq_set_id"] == "set-1"
        assert body["args"][0]["webhook_url"].endswith("/generation/webhook")

    @pytest.mark.asyncio
    async def test_client_error_is_a_rejection(self):
        post = AsyncMock(return_value=_response(400, {"detail": "unknown task queue"}))
        ack = await _worker(post=post).submit_job(_request())
        assert ack.accepted is False
        assert ack.detail == "unknown task queue"

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        post = AsyncMock(return_value=_response(503))
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await _worker(post=post).submit_job(_request())
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timed out")],
    )
    async def test_transport_errors_are_unavailable(self, error):
        post = AsyncMock(side_effect=error)
        with pytest.raises(UpstreamUnavailable):
            await _worker(post=post).submit_job(_request())


class TestDescribe:
    @pytest.mark.asyncio
    async def test_maps_status(self):
        get = AsyncMock(return_value=_response(200, {"status": "WORKFLOW_EXECUTION_STATUS_COMPLETED"}))
        assert await _worker(get=get).describe("job-1") == LiveJobStatus.COMPLETED
        assert get.call_args.args[0] == "/workflows/job-1"

    @pytest.mark.asyncio
    async def test_errors_are_unknown(self):
        get = AsyncMock(side_effect=httpx.ConnectError("down"))
        assert await _worker(get=get).describe("job-1") == LiveJobStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_non_200_is_unknown(self):
        get = AsyncMock(return_value=_response(404, {"detail": "not found"}))
        assert await _worker(get=get).describe("job-1") == LiveJobStatus.UNKNOWN


class TestMapWorkerStatus:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("RUNNING", LiveJobStatus.RUNNING),
            ("running", LiveJobStatus.RUNNING),
            ("COMPLETED", LiveJobStatus.COMPLETED),
            ("WORKFLOW_EXECUTION_STATUS_FAILED", LiveJobStatus.FAILED),
            ("TERMINATED", LiveJobStatus.FAILED),
            ("TIMED_OUT", LiveJobStatus.FAILED),
            ("SOMETHING_NEW", LiveJobStatus.UNKNOWN),
            ("", LiveJobStatus.UNKNOWN),
            (None, LiveJobStatus.UNKNOWN),
        ],
    )
    def test_mapping(self, raw, expected):
        assert map_worker_status(raw) == expected
