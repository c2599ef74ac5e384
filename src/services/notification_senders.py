"""
Notification sender adapters.

The nudge service only sees two small interfaces, ``send_email`` and
``send_message``. Providers sit behind them:
- Amazon SES for email (boto3)
- a WhatsApp provider HTTP API (httpx)
- console senders that only log, for local runs

Adapters never raise delivery problems; they return a ``SendResult`` with
``error`` set instead.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import NudgeSettings
from utils.error_handling import DeliveryError
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendResult:
    """Outcome of one provider call."""

    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class EmailSender(Protocol):
    def send_email(self, recipient: str, subject: str, html_body: str) -> SendResult: ...


class MessageSender(Protocol):
    def send_message(self, recipient: str, body: str) -> SendResult: ...


class SesEmailSender:
    """Send HTML email through Amazon SES."""

    def __init__(self, source: str, region: Optional[str] = None, client=None):
        self.source = source
        self.client = client or boto3.client("ses", region_name=region)

    def send_email(self, recipient: str, subject: str, html_body: str) -> SendResult:
        try:
            resp = self.client.send_email(
                Source=self.source,
                Destination={"ToAddresses": [recipient]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": html_body, "Charset": "UTF-8"}},
                },
            )
        except ClientError as exc:
            message = exc.response.get("Error", {}).get("Message") or str(exc)
            logger.warning("SES send failed", extra={"error": message})
            return SendResult(error=f"SES send failed: {message}")
        except BotoCoreError as exc:
            logger.warning("SES send failed", extra={"error": str(exc)})
            return SendResult(error=f"SES send failed: {exc}")
        return SendResult(message_id=resp.get("MessageId"))


class WhatsAppSender:
    """Send WhatsApp text messages through the provider's REST API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def send_message(self, recipient: str, body: str) -> SendResult:
        try:
            message_id = self._post({"phone": recipient, "message": body, "apiKey": self.api_key})
        except DeliveryError as exc:
            logger.warning("WhatsApp send failed", extra={"error": str(exc)})
            return SendResult(error=str(exc))
        return SendResult(message_id=message_id)

    def _post(self, payload: dict) -> Optional[str]:
        """POST to the provider and return its message id; raise DeliveryError otherwise."""
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = client.post(self.api_url, json=payload)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"WhatsApp send failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise DeliveryError(f"WhatsApp API HTTP {resp.status_code}: {resp.text[:300]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise DeliveryError(f"WhatsApp API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            raise DeliveryError(message or "WhatsApp API error")
        return data.get("messageId")


class ConsoleEmailSender:
    """Log emails instead of sending them."""

    def send_email(self, recipient: str, subject: str, html_body: str) -> SendResult:
        message_id = f"console-{uuid.uuid4().hex[:12]}"
        logger.info(
            "[EMAIL]",
            extra={"to": recipient, "subject": subject, "message_id": message_id},
        )
        return SendResult(message_id=message_id)


class ConsoleMessageSender:
    """Log WhatsApp messages instead of sending them."""

    def send_message(self, recipient: str, body: str) -> SendResult:
        message_id = f"console-{uuid.uuid4().hex[:12]}"
        logger.info(
            "[WHATSAPP]",
            extra={"to": recipient, "body": body, "message_id": message_id},
        )
        return SendResult(message_id=message_id)


def build_senders(settings: NudgeSettings) -> Tuple[EmailSender, MessageSender]:
    """Pick live or console senders from settings."""
    if settings.delivery_mode == "console":
        return ConsoleEmailSender(), ConsoleMessageSender()
    return (
        SesEmailSender(source=settings.email_from, region=settings.ses_region),
        WhatsAppSender(
            api_url=settings.whatsapp_api_url,
            api_key=settings.whatsapp_api_key,
            timeout_seconds=settings.whatsapp_timeout_seconds,
        ),
    )
