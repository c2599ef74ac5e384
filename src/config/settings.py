"""
Runtime settings for the nudge engine.

Values come from Lambda environment variables; defaults keep local runs and
tests working without any AWS resources.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple

from models.customer import MAX_SEQUENCE_NUDGES

DEFAULT_CADENCE_DAYS: Tuple[int, ...] = (7, 21, 51, 81, 111)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value for {name}: {raw!r}") from exc


def _env_cadence(name: str) -> Tuple[int, ...]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return DEFAULT_CADENCE_DAYS
    try:
        days = tuple(int(item) for item in raw.split(",") if item.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid cadence for {name}: {raw!r}") from exc
    if not days or any(day < 0 for day in days):
        raise RuntimeError(f"{name} must list non-negative day counts")
    return days


@dataclass
class NudgeSettings:
    """Settings consumed by the nudge service and sender adapters."""

    customers_table: str = "customers"
    nudge_logs_table: str = "nudge-logs"

    # "live" uses SES + the WhatsApp provider, "console" only logs.
    delivery_mode: str = "live"
    email_from: str = "success@referrush.com"
    ses_region: str = "eu-west-2"
    whatsapp_api_url: str = "https://api.whatsapp-provider.com/send"
    whatsapp_api_key: str = ""
    whatsapp_timeout_seconds: float = 10.0

    max_workers: int = 4
    simple_interval_days: int = 7
    max_sequence_nudges: int = MAX_SEQUENCE_NUDGES
    default_cadence_days: Tuple[int, ...] = field(default=DEFAULT_CADENCE_DAYS)

    @classmethod
    def from_environment(cls) -> "NudgeSettings":
        """Load settings from environment variables."""
        delivery_mode = os.environ.get("NUDGE_DELIVERY_MODE", "live").strip().lower()
        if delivery_mode not in {"live", "console"}:
            raise RuntimeError(f"Invalid NUDGE_DELIVERY_MODE: {delivery_mode!r}")
        max_sequence_nudges = _env_int("NUDGE_MAX_SEQUENCE_NUDGES", MAX_SEQUENCE_NUDGES)
        if not 1 <= max_sequence_nudges <= MAX_SEQUENCE_NUDGES:
            raise RuntimeError(
                f"NUDGE_MAX_SEQUENCE_NUDGES must be between 1 and {MAX_SEQUENCE_NUDGES}"
            )

        return cls(
            customers_table=os.environ.get("CUSTOMERS_TABLE", "customers"),
            nudge_logs_table=os.environ.get("NUDGE_LOGS_TABLE", "nudge-logs"),
            delivery_mode=delivery_mode,
            email_from=os.environ.get("EMAIL_FROM", "success@referrush.com"),
            ses_region=(
                os.environ.get("SES_REGION")
                or os.environ.get("AWS_REGION")
                or "eu-west-2"
            ),
            whatsapp_api_url=os.environ.get(
                "WHATSAPP_API_URL", "https://api.whatsapp-provider.com/send"
            ),
            whatsapp_api_key=os.environ.get("WHATSAPP_API_KEY", ""),
            whatsapp_timeout_seconds=float(os.environ.get("WHATSAPP_TIMEOUT_SECONDS", "10")),
            max_workers=max(1, _env_int("NUDGE_MAX_WORKERS", 4)),
            simple_interval_days=_env_int("NUDGE_SIMPLE_INTERVAL_DAYS", 7),
            max_sequence_nudges=max_sequence_nudges,
            default_cadence_days=_env_cadence("NUDGE_DEFAULT_CADENCE_DAYS"),
        )
