"""
Cadence policy: decides whether a touchpoint is due for a nudge.

Pure functions only. The caller passes ``now`` and a ``CadenceConfig`` so the
decision never depends on the clock or module-level defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from config.settings import DEFAULT_CADENCE_DAYS, NudgeSettings
from models.customer import Customer
from models.touchpoint import Channel, Touchpoint

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class CadenceConfig:
    """Timing constants for the policy."""

    simple_interval_days: int = 7
    default_cadence_days: Tuple[int, ...] = DEFAULT_CADENCE_DAYS
    max_sequence_nudges: int = 5

    @classmethod
    def from_settings(cls, settings: NudgeSettings) -> "CadenceConfig":
        return cls(
            simple_interval_days=settings.simple_interval_days,
            default_cadence_days=tuple(settings.default_cadence_days),
            max_sequence_nudges=settings.max_sequence_nudges,
        )


@dataclass(frozen=True)
class CadenceDecision:
    """Result of one policy evaluation."""

    due: bool
    reason: str
    # Set for sequences only: the channel they must use.
    channel_hint: Optional[Channel] = None
    # Set for sequences past their first touch: index into the cadence array.
    cadence_index: Optional[int] = None


def should_nudge(
    customer: Customer,
    touchpoint: Touchpoint,
    now: datetime,
    config: CadenceConfig = CadenceConfig(),
) -> CadenceDecision:
    """Decide whether ``touchpoint`` should be nudged for ``customer`` at ``now``."""
    if touchpoint.is_enabled(customer):
        return CadenceDecision(False, "enabled", touchpoint.fixed_channel)
    if touchpoint.is_sequence:
        return _sequence_decision(customer, touchpoint, now, config)
    return _simple_decision(customer, touchpoint, now, config)


def _simple_decision(
    customer: Customer, touchpoint: Touchpoint, now: datetime, config: CadenceConfig
) -> CadenceDecision:
    last_nudged = customer.last_nudged.get(touchpoint.value)
    if last_nudged is None:
        return CadenceDecision(True, "never_nudged")
    if now - last_nudged >= timedelta(days=config.simple_interval_days):
        return CadenceDecision(True, "interval_elapsed")
    return CadenceDecision(False, "nudged_recently")


def _sequence_decision(
    customer: Customer, touchpoint: Touchpoint, now: datetime, config: CadenceConfig
) -> CadenceDecision:
    sequence = touchpoint.follow_up(customer)
    channel = touchpoint.fixed_channel
    count = sequence.nudge_count

    if count >= config.max_sequence_nudges:
        return CadenceDecision(False, "max_nudges_reached", channel)
    if count == 0:
        return CadenceDecision(True, "first_touch", channel)

    cadence = (
        sequence.cadence_days
        if sequence.cadence_days is not None
        else config.default_cadence_days
    )
    # The wait before send N+1 is looked up by the current count.
    if count >= len(cadence):
        return CadenceDecision(False, "cadence_exhausted", channel, count)
    if sequence.last_nudge_date is None:
        return CadenceDecision(False, "missing_last_nudge_date", channel, count)

    elapsed_days = (now - sequence.last_nudge_date).total_seconds() / SECONDS_PER_DAY
    if elapsed_days >= cadence[count]:
        return CadenceDecision(True, "cadence_elapsed", channel, count)
    return CadenceDecision(False, "waiting_for_cadence", channel, count)
