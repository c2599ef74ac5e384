"""
Nudge orchestration: the daily automatic pass and manual nudges.

Flow per customer in a pass:
  touchpoint -> cadence policy -> channel choice -> render -> send
  -> one log entry -> state update (success only)

Failed sends leave the customer's state untouched, so the touchpoint is
picked up again by the next pass. Logging happens before the state update;
a crash in between re-sends the next day (at-least-once delivery).
"""

from __future__ import annotations

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from config.settings import NudgeSettings
from models.customer import Customer
from models.nudge import (
    ManualNudgeResult,
    MissingTouchpoints,
    NudgeDetail,
    NudgeLogEntry,
    NudgeTrigger,
    PassSummary,
    RecipientResult,
)
from models.touchpoint import ABANDONED_CART, Channel, Touchpoint
from repositories.base import CustomerStore, NudgeLogSink
from services.cadence_policy import CadenceConfig, should_nudge
from services.notification_senders import EmailSender, MessageSender, SendResult
from services.template_service import RenderedMessage, render
from utils.error_handling import DeliveryError, NotFoundError, ValidationError
from utils.logging_config import get_logger
from utils.validators import is_valid_email, is_valid_whatsapp_number

logger = get_logger(__name__)

Renderer = Callable[..., RenderedMessage]
Outcome = Tuple[NudgeDetail, bool]

# One automatic pass at a time per process.
_PASS_LOCK = threading.Lock()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NudgeService:
    """Decides, sends and records touchpoint nudges."""

    def __init__(
        self,
        customer_store: CustomerStore,
        log_sink: NudgeLogSink,
        email_sender: EmailSender,
        message_sender: MessageSender,
        settings: Optional[NudgeSettings] = None,
        rng: Optional[random.Random] = None,
        renderer: Renderer = render,
    ):
        self.settings = settings or NudgeSettings()
        self.customer_store = customer_store
        self.log_sink = log_sink
        self.email_sender = email_sender
        self.message_sender = message_sender
        self.config = CadenceConfig.from_settings(self.settings)
        self.renderer = renderer
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Automatic pass
    # ------------------------------------------------------------------
    def run_daily_pass(
        self,
        now: Optional[datetime] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PassSummary:
        """Evaluate every customer's touchpoints and send the nudges that are due.

        Customers run concurrently on a bounded pool; each customer's
        touchpoints run sequentially so its store writes never race.
        Setting ``cancel_event`` stops new sends; in-flight sends finish.
        """
        now = now or _utcnow()
        cancel_event = cancel_event or threading.Event()

        with _PASS_LOCK:
            summary = PassSummary(started_at=now)
            customers = self.customer_store.list_all()
            logger.info("Nudge pass started", extra={"customers": len(customers)})

            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as pool:
                futures = [
                    pool.submit(self._process_customer, customer, now, cancel_event)
                    for customer in customers
                ]
                for future in futures:
                    for detail, attempted in future.result():
                        summary.record(detail, attempted=attempted)

            summary.cancelled = cancel_event.is_set()
            summary.finished_at = _utcnow()

        logger.info(
            "Nudge pass finished",
            extra={
                "total": summary.total,
                "successful": summary.successful,
                "failed": summary.failed,
                "cancelled": summary.cancelled,
            },
        )
        return summary

    def _process_customer(
        self, customer: Customer, now: datetime, cancel_event: threading.Event
    ) -> List[Outcome]:
        outcomes: List[Outcome] = []
        current: Optional[Touchpoint] = None
        try:
            for touchpoint in Touchpoint:
                if cancel_event.is_set():
                    break
                current = touchpoint
                decision = should_nudge(customer, touchpoint, now, self.config)
                if not decision.due:
                    continue

                channel = decision.channel_hint or self._pick_channel()
                recipient = self._default_recipient(customer, channel)
                result = self._deliver(
                    customer, touchpoint, channel, recipient, now, NudgeTrigger.AUTOMATIC
                )
                # Every send is counted, even when the state write below fails.
                detail = NudgeDetail(
                    customer_id=customer.customer_id,
                    customer_name=customer.name,
                    touchpoint=touchpoint.value,
                    channel=channel,
                    success=result.success,
                    error=result.error,
                )
                outcomes.append((detail, True))
                if result.success:
                    detail.nudge_count = self._advance_state(customer, touchpoint, channel, now)
        except Exception as exc:
            # Store or sink trouble: skip this customer's remaining touchpoints only.
            logger.exception(
                "Aborting customer nudges",
                extra={
                    "customer_id": customer.customer_id,
                    "touchpoint": current.value if current else None,
                },
            )
            outcomes.append(
                (
                    NudgeDetail(
                        customer_id=customer.customer_id,
                        customer_name=customer.name,
                        touchpoint=current.value if current else None,
                        success=False,
                        error=f"Unexpected error: {exc}",
                    ),
                    False,
                )
            )
        return outcomes

    def _pick_channel(self) -> Channel:
        with self._rng_lock:
            return self._rng.choice([Channel.EMAIL, Channel.WHATSAPP])

    @staticmethod
    def _default_recipient(customer: Customer, channel: Channel) -> Optional[str]:
        if channel is Channel.EMAIL:
            return customer.primary_email
        return customer.primary_phone

    # ------------------------------------------------------------------
    # Manual nudge
    # ------------------------------------------------------------------
    def nudge_now(
        self,
        customer_id: str,
        touchpoint: str,
        channel: str,
        recipients: Sequence[Any],
        message: Optional[str] = None,
        subject: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ManualNudgeResult:
        """Send one touchpoint nudge to each recipient, skipping the cadence gate."""
        now = now or _utcnow()
        customer = self.customer_store.get(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        if not isinstance(recipients, (list, tuple)) or not recipients:
            raise ValidationError("Please provide at least one recipient")

        parsed_touchpoint = Touchpoint.parse(touchpoint)
        if parsed_touchpoint is None and touchpoint != ABANDONED_CART:
            raise ValidationError("Invalid touchpoint specified")
        try:
            parsed_channel = Channel(channel)
        except ValueError as exc:
            raise ValidationError("Invalid channel specified") from exc
        if parsed_touchpoint is None:
            parsed_touchpoint = Touchpoint.abandoned_cart(parsed_channel)

        result = ManualNudgeResult()
        for recipient in recipients:
            error = self._recipient_error(parsed_channel, recipient)
            if error:
                result.failed += 1
                result.errors.append(error)
                result.results.append(
                    RecipientResult(recipient=str(recipient), success=False, error=error)
                )
                continue

            send_result = self._deliver(
                customer,
                parsed_touchpoint,
                parsed_channel,
                recipient,
                now,
                NudgeTrigger.MANUAL,
                override_text=message,
                subject=subject,
            )
            if send_result.success:
                result.success += 1
            else:
                result.failed += 1
                result.errors.append(f"Error processing {recipient}: {send_result.error}")
            result.results.append(
                RecipientResult(
                    recipient=recipient,
                    success=send_result.success,
                    message_id=send_result.message_id,
                    error=send_result.error,
                )
            )

        if result.success:
            self._advance_state(customer, parsed_touchpoint, parsed_channel, now)

        logger.info(
            "Manual nudge finished",
            extra={
                "customer_id": customer_id,
                "touchpoint": parsed_touchpoint.value,
                "channel": parsed_channel.value,
                "success": result.success,
                "failed": result.failed,
            },
        )
        return result

    @staticmethod
    def _recipient_error(channel: Channel, recipient: Any) -> Optional[str]:
        if channel is Channel.EMAIL and not is_valid_email(recipient):
            return f"Invalid email format: {recipient}"
        if channel is Channel.WHATSAPP and not is_valid_whatsapp_number(recipient):
            return f"Invalid phone format: {recipient}"
        return None

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def customers_with_missing_touchpoints(self) -> List[MissingTouchpoints]:
        """Customers that still have at least one touchpoint switched off."""
        report: List[MissingTouchpoints] = []
        for customer in self.customer_store.list_all():
            issues = [tp.value for tp in Touchpoint if not tp.is_enabled(customer)]
            if not issues:
                continue
            offer_issues = []
            if not customer.offer.all_customers_can_use_code:
                offer_issues.append("offerAvailabilityLimited")
            if customer.offer.quality == "low":
                offer_issues.append("offerQualityLow")
            report.append(
                MissingTouchpoints(
                    customer_id=customer.customer_id,
                    customer_name=customer.name,
                    email=customer.point_of_contact.email,
                    phone=customer.point_of_contact.phone,
                    issues=issues,
                    offer_issues=offer_issues,
                )
            )
        return report

    def list_logs(self, customer_id: str) -> List[NudgeLogEntry]:
        """Nudge history for one customer, newest first."""
        if self.customer_store.get(customer_id) is None:
            raise NotFoundError("Customer not found")
        return self.log_sink.list_by_customer(customer_id)

    # ------------------------------------------------------------------
    # Send + record
    # ------------------------------------------------------------------
    def _deliver(
        self,
        customer: Customer,
        touchpoint: Touchpoint,
        channel: Channel,
        recipient: Optional[str],
        now: datetime,
        trigger: NudgeTrigger,
        override_text: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> SendResult:
        """Send one nudge and append exactly one log entry for it."""
        if recipient is None:
            result = SendResult(error=f"No {channel.value} contact on file")
        else:
            result = self._send(customer, touchpoint, channel, recipient, override_text, subject)

        self.log_sink.append(
            NudgeLogEntry(
                customer_id=customer.customer_id,
                touchpoint=touchpoint.value,
                channel=channel,
                recipient=recipient,
                success=result.success,
                error_message=result.error,
                message_id=result.message_id,
                sent_at=now,
                trigger=trigger,
            )
        )

        log_extra = {
            "customer_id": customer.customer_id,
            "touchpoint": touchpoint.value,
            "channel": channel.value,
            "trigger": trigger.value,
        }
        if result.success:
            logger.info("Nudge sent", extra={**log_extra, "message_id": result.message_id})
        else:
            logger.warning("Nudge failed", extra={**log_extra, "error": result.error})
        return result

    def _send(
        self,
        customer: Customer,
        touchpoint: Touchpoint,
        channel: Channel,
        recipient: str,
        override_text: Optional[str],
        subject: Optional[str],
    ) -> SendResult:
        try:
            message = self.renderer(channel, touchpoint.value, customer, override_text, subject)
            if channel is Channel.EMAIL:
                return self.email_sender.send_email(recipient, message.subject, message.body)
            return self.message_sender.send_message(recipient, message.body)
        except DeliveryError as exc:
            return SendResult(error=str(exc))
        except Exception as exc:
            logger.exception("Sender raised", extra={"channel": channel.value})
            return SendResult(error=f"Delivery failed: {exc}")

    def _advance_state(
        self, customer: Customer, touchpoint: Touchpoint, channel: Channel, now: datetime
    ) -> Optional[int]:
        """Record a successful nudge; returns the new sequence count, if any.

        A sequence only advances when it was sent on its own channel.
        """
        fields: Dict[str, Any] = {touchpoint.last_nudged_path: now}
        new_count = None
        if touchpoint.is_sequence and channel is touchpoint.fixed_channel:
            sequence = touchpoint.follow_up(customer)
            new_count = min(sequence.nudge_count + 1, self.config.max_sequence_nudges)
            fields[touchpoint.nudge_count_path] = new_count
            fields[touchpoint.last_nudge_date_path] = now
        self.customer_store.update_partial(customer.customer_id, fields)
        return new_count


def build_nudge_service(settings: Optional[NudgeSettings] = None) -> NudgeService:
    """Wire the service to DynamoDB and the configured senders."""
    from repositories.dynamodb_repo import CustomerRepository, NudgeLogRepository
    from services.notification_senders import build_senders

    settings = settings or NudgeSettings.from_environment()
    email_sender, message_sender = build_senders(settings)
    return NudgeService(
        customer_store=CustomerRepository(settings.customers_table),
        log_sink=NudgeLogRepository(settings.nudge_logs_table),
        email_sender=email_sender,
        message_sender=message_sender,
        settings=settings,
    )
