"""Customer records as stored in the customers table."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from models.base import CamelModel


# A follow-up sequence never sends more than this many nudges.
MAX_SEQUENCE_NUDGES = 5


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FollowUpSequence(CamelModel):
    """Cadence-driven follow-up touchpoint (email or WhatsApp)."""

    enabled: bool = False
    # None means "use the configured default cadence".
    cadence_days: Optional[List[int]] = None
    nudge_count: int = Field(default=0, ge=0)
    last_nudge_date: Optional[datetime] = None

    @field_validator("cadence_days")
    @classmethod
    def validate_cadence(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is not None and any(day < 0 for day in value):
            raise ValueError("cadenceDays must be non-negative")
        return value

    @field_validator("nudge_count")
    @classmethod
    def cap_nudge_count(cls, value: int) -> int:
        return min(value, MAX_SEQUENCE_NUDGES)

    @field_validator("last_nudge_date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class ChannelTouchpoints(CamelModel):
    whitelabeled: bool = False
    follow_ups: FollowUpSequence = Field(default_factory=FollowUpSequence)


class AbandonedCart(CamelModel):
    email: bool = False
    whatsapp: bool = False


class Touchpoints(CamelModel):
    """Enabled/disabled state of every product touchpoint."""

    referral_welcome_popup: bool = False
    extension: bool = False
    referral_form: bool = False
    whatsapp: ChannelTouchpoints = Field(default_factory=ChannelTouchpoints)
    email: ChannelTouchpoints = Field(default_factory=ChannelTouchpoints)
    sms: bool = False
    abandoned_cart: AbandonedCart = Field(default_factory=AbandonedCart)


class PointOfContact(CamelModel):
    name: Optional[str] = None
    email: List[str] = Field(default_factory=list)
    phone: List[str] = Field(default_factory=list)


class Offer(CamelModel):
    """Referral offer; only used to derive the offer quality signal."""

    discount: str = "0%"
    cashback: float = 0.0
    all_customers_can_use_code: bool = False

    @property
    def discount_percent(self) -> float:
        try:
            return float(self.discount.replace("%", "").strip())
        except ValueError:
            return 0.0

    @property
    def quality(self) -> str:
        """Bucket the offer into high / standard / low."""
        if self.discount_percent >= 15 and self.cashback >= 300:
            return "high"
        if self.discount_percent < 10 or self.cashback < 200:
            return "low"
        return "standard"


class Customer(CamelModel):
    """Onboarded business customer and its nudge state."""

    customer_id: str
    name: str
    note: Optional[str] = None
    offer: Offer = Field(default_factory=Offer)
    point_of_contact: PointOfContact = Field(default_factory=PointOfContact)
    touchpoints: Touchpoints = Field(default_factory=Touchpoints)
    last_nudged: Dict[str, Optional[datetime]] = Field(default_factory=dict)

    @field_validator("last_nudged")
    @classmethod
    def normalize_last_nudged(
        cls, value: Dict[str, Optional[datetime]]
    ) -> Dict[str, Optional[datetime]]:
        return {key: _as_utc(stamp) for key, stamp in value.items() if stamp is not None}

    @property
    def contact_name(self) -> str:
        return self.point_of_contact.name or self.name

    @property
    def primary_email(self) -> Optional[str]:
        return self.point_of_contact.email[0] if self.point_of_contact.email else None

    @property
    def primary_phone(self) -> Optional[str]:
        return self.point_of_contact.phone[0] if self.point_of_contact.phone else None
