"""Nudge log entries and the results returned by the nudge service."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field

from models.base import CamelModel
from models.touchpoint import Channel


class NudgeTrigger(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class NudgeLogEntry(CamelModel):
    """One send attempt. Written once, never updated."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    touchpoint: str
    channel: Channel
    recipient: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    sent_at: datetime
    trigger: NudgeTrigger = NudgeTrigger.AUTOMATIC


class NudgeDetail(CamelModel):
    """Outcome of one touchpoint evaluation inside a daily pass."""

    customer_id: str
    customer_name: str
    touchpoint: Optional[str] = None
    channel: Optional[Channel] = None
    success: bool
    nudge_count: Optional[int] = None
    error: Optional[str] = None


class PassSummary(CamelModel):
    """Aggregate result of one automatic pass."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    cancelled: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    details: List[NudgeDetail] = Field(default_factory=list)

    def record(self, detail: NudgeDetail, attempted: bool = True) -> None:
        """Add a detail; only attempted sends count towards the tallies."""
        self.details.append(detail)
        if not attempted:
            return
        self.total += 1
        if detail.success:
            self.successful += 1
        else:
            self.failed += 1


class RecipientResult(CamelModel):
    recipient: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ManualNudgeResult(CamelModel):
    """Per-recipient tally of a manual nudge."""

    success: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
    results: List[RecipientResult] = Field(default_factory=list)


class MissingTouchpoints(CamelModel):
    """A customer that still has touchpoints to switch on."""

    customer_id: str
    customer_name: str
    email: List[str] = Field(default_factory=list)
    phone: List[str] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    offer_issues: List[str] = Field(default_factory=list)
