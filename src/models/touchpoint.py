"""Closed set of nudgeable touchpoints and delivery channels."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from models.customer import Customer, FollowUpSequence


class Channel(str, Enum):
    """Delivery channels supported by the senders."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"


class TouchpointKind(str, Enum):
    """Simple touchpoints repeat on a fixed interval; sequences follow a cadence."""

    SIMPLE = "simple"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class TouchpointSpec:
    label: str
    subject: str
    kind: TouchpointKind
    is_enabled: Callable[[Customer], bool]
    # Sequences never switch channel; None means the orchestrator picks.
    fixed_channel: Optional[Channel] = None


# Manual nudges accept this name and pick the member from the channel.
ABANDONED_CART = "abandonedCart"


class Touchpoint(str, Enum):
    """Every touchpoint the engine evaluates, in evaluation order."""

    REFERRAL_WELCOME_POPUP = "referralWelcomePopup"
    EXTENSION = "extension"
    REFERRAL_FORM = "referralForm"
    WHATSAPP_WHITELABELING = "whatsappWhitelabeling"
    WHATSAPP_FOLLOW_UPS = "whatsappFollowUps"
    EMAIL_WHITELABELING = "emailWhitelabeling"
    EMAIL_FOLLOW_UPS = "emailFollowUps"
    ABANDONED_CART_EMAIL = "abandonedCartEmail"
    ABANDONED_CART_WHATSAPP = "abandonedCartWhatsapp"

    @property
    def spec(self) -> TouchpointSpec:
        return _SPECS[self]

    @property
    def label(self) -> str:
        return self.spec.label

    @property
    def subject(self) -> str:
        return self.spec.subject

    @property
    def is_sequence(self) -> bool:
        return self.spec.kind is TouchpointKind.SEQUENCE

    @property
    def fixed_channel(self) -> Optional[Channel]:
        return self.spec.fixed_channel

    def is_enabled(self, customer: Customer) -> bool:
        return self.spec.is_enabled(customer)

    def follow_up(self, customer: Customer) -> Optional[FollowUpSequence]:
        """Return the follow-up sequence backing this touchpoint, if any."""
        if not self.is_sequence:
            return None
        return getattr(customer.touchpoints, self.fixed_channel.value).follow_ups

    @property
    def last_nudged_path(self) -> str:
        return f"lastNudged.{self.value}"

    @property
    def nudge_count_path(self) -> Optional[str]:
        if not self.is_sequence:
            return None
        return f"touchpoints.{self.fixed_channel.value}.followUps.nudgeCount"

    @property
    def last_nudge_date_path(self) -> Optional[str]:
        if not self.is_sequence:
            return None
        return f"touchpoints.{self.fixed_channel.value}.followUps.lastNudgeDate"

    @classmethod
    def parse(cls, name: str) -> Optional["Touchpoint"]:
        """Look up a touchpoint by its stored name; None when unknown."""
        try:
            return cls(name)
        except ValueError:
            return None

    @classmethod
    def abandoned_cart(cls, channel: Channel) -> "Touchpoint":
        """Resolve the channel-neutral ``abandonedCart`` name."""
        if channel is Channel.EMAIL:
            return cls.ABANDONED_CART_EMAIL
        return cls.ABANDONED_CART_WHATSAPP


_SPECS = {
    Touchpoint.REFERRAL_WELCOME_POPUP: TouchpointSpec(
        label="Referral Welcome Pop-Up",
        subject="Activate Your Referral Welcome Pop-Up",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.referral_welcome_popup,
    ),
    Touchpoint.EXTENSION: TouchpointSpec(
        label="Extension",
        subject="Activate Your ReferRush Extension",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.extension,
    ),
    Touchpoint.REFERRAL_FORM: TouchpointSpec(
        label="Referral Form",
        subject="Activate Your Referral Form",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.referral_form,
    ),
    Touchpoint.WHATSAPP_WHITELABELING: TouchpointSpec(
        label="WhatsApp White Labeling",
        subject="Set Up WhatsApp White Labeling",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.whatsapp.whitelabeled,
    ),
    Touchpoint.WHATSAPP_FOLLOW_UPS: TouchpointSpec(
        label="WhatsApp Follow-Ups",
        subject="Activate Your WhatsApp Follow-Ups",
        kind=TouchpointKind.SEQUENCE,
        is_enabled=lambda c: c.touchpoints.whatsapp.follow_ups.enabled,
        fixed_channel=Channel.WHATSAPP,
    ),
    Touchpoint.EMAIL_WHITELABELING: TouchpointSpec(
        label="Email White Labeling",
        subject="Set Up Email White Labeling",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.email.whitelabeled,
    ),
    Touchpoint.EMAIL_FOLLOW_UPS: TouchpointSpec(
        label="Email Follow-Ups",
        subject="Activate Your Email Follow-Ups",
        kind=TouchpointKind.SEQUENCE,
        is_enabled=lambda c: c.touchpoints.email.follow_ups.enabled,
        fixed_channel=Channel.EMAIL,
    ),
    Touchpoint.ABANDONED_CART_EMAIL: TouchpointSpec(
        label="Abandoned Cart Emails",
        subject="Complete Your Purchase",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.abandoned_cart.email,
    ),
    Touchpoint.ABANDONED_CART_WHATSAPP: TouchpointSpec(
        label="Abandoned Cart WhatsApp Reminders",
        subject="Complete Your Purchase",
        kind=TouchpointKind.SIMPLE,
        is_enabled=lambda c: c.touchpoints.abandoned_cart.whatsapp,
    ),
}
