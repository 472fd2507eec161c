"""Unit tests for invitation delivery."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from assessment_engine.engines.access.notifier import (
    BrevoNotifier,
    LoggingNotifier,
    Recipient,
    build_notifier,
)


def _notifier(post: AsyncMock) -> BrevoNotifier:
    client = MagicMock()
    client.post = post
    return BrevoNotifier(
        api_url="https://mail.test/v3/smtp/email",
        api_key="key",
        sender_email="quiz@example.com",
        sender_name="Quiz",
        client=client,
    )


class TestBrevoNotifier:
    @pytest.mark.asyncio
    async def test_delivered(self):
        post = AsyncMock(return_value=MagicMock(status_code=201))
        result = await _notifier(post).send(Recipient("ada@example.com", "Ada"), "Hello", "<p>hi</p>")

        assert result.delivered is True
        assert result.status == "delivered"
        payload = post.call_args.kwargs["json"]
        assert payload["to"] == [{"email": "ada@example.com", "name": "Ada"}]
        assert payload["sender"]["email"] == "quiz@example.com"
        assert payload["htmlContent"] == "<p>hi</p>"

    @pytest.mark.asyncio
    async def test_rejected(self):
        post = AsyncMock(return_value=MagicMock(status_code=401))
        result = await _notifier(post).send(Recipient("ada@example.com"), "Hello", "body")
        assert result.delivered is False
        assert result.detail == "HTTP 401"

    @pytest.mark.asyncio
    async def test_transport_error_does_not_raise(self):
        post = AsyncMock(side_effect=httpx.ConnectError("no route"))
        result = await _notifier(post).send(Recipient("ada@example.com"), "Hello", "body")
        assert result.delivered is False
        assert result.status == "failed"


class TestBuildNotifier:
    def test_logging_notifier_without_key(self):
        settings = MagicMock(notifier_api_key="")
        assert isinstance(build_notifier(settings), LoggingNotifier)

    def test_brevo_with_key(self):
        settings = MagicMock(
            notifier_api_key="key",
            notifier_api_url="https://mail.test",
            notifier_sender_email="quiz@example.com",
            notifier_sender_name="Quiz",
        )
        assert isinstance(build_notifier(settings), BrevoNotifier)

    @pytest.mark.asyncio
    async def test_logging_notifier_always_delivers(self):
        result = await LoggingNotifier().send(Recipient("ada@example.com"), "Hello", "body")
        assert result.delivered is True
