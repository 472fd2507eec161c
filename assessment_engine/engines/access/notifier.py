"""
Notifier - delivers access-code invitations.

BrevoNotifier talks to a transactional email API; LoggingNotifier is used
when no API key is configured (local development, tests).
"""

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from assessment_engine.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Recipient:
    email: str
    name: Optional[str] = None


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    detail: Optional[str] = None

    @property
    def status(self) -> str:
        return "delivered" if self.delivered else "failed"


class Notifier(Protocol):
    async def send(self, recipient: Recipient, subject: str, body: str) -> DeliveryResult:
        """Deliver one message. Must not raise for delivery problems."""
        ...


class BrevoNotifier:
    """Sends HTML mail through the Brevo (Sendinblue) SMTP API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender_email: str,
        sender_name: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.sender = {"email": sender_email, "name": sender_name}
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"api-key": api_key, "accept": "application/json"},
        )

    async def send(self, recipient: Recipient, subject: str, body: str) -> DeliveryResult:
        to = {"email": recipient.email}
        if recipient.name:
            to["name"] = recipient.name
        payload = {
            "sender": self.sender,
            "to": [to],
            "subject": subject,
            "htmlContent": body,
        }
        try:
            response = await self._client.post(self.api_url, json=payload)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            logger.warning("Notification transport error: %s", e, extra={"recipient": recipient.email})
            return DeliveryResult(delivered=False, detail=str(e) or type(e).__name__)

        if response.status_code >= 400:
            logger.warning(
                "Notification rejected with %s",
                response.status_code,
                extra={"recipient": recipient.email},
            )
            return DeliveryResult(delivered=False, detail=f"HTTP {response.status_code}")
        return DeliveryResult(delivered=True)

    async def aclose(self) -> None:
        await self._client.aclose()


class LoggingNotifier:
    """Writes the invitation to the log instead of sending it."""

    async def send(self, recipient: Recipient, subject: str, body: str) -> DeliveryResult:
        logger.info("Notification (not sent): %s", subject, extra={"recipient": recipient.email})
        return DeliveryResult(delivered=True, detail="logged")

    async def aclose(self) -> None:
        return None


def build_notifier(settings) -> Notifier:
    if not settings.notifier_api_key:
        return LoggingNotifier()
    return BrevoNotifier(
        api_url=settings.notifier_api_url,
        api_key=settings.notifier_api_key,
        sender_email=settings.notifier_sender_email,
        sender_name=settings.notifier_sender_name,
    )
