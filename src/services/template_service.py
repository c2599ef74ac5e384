"""Message rendering for nudges, keyed by touchpoint name."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Dict, Optional, Tuple

from models.customer import Customer
from models.touchpoint import Channel, Touchpoint

SETUP_BASE_URL = "https://app.referrush.com/setup"
CUSTOM_SUBJECT = "A Quick Note From ReferRush"

# touchpoint -> (setup path, pitch line)
_COPY: Dict[Touchpoint, Tuple[str, str]] = {
    Touchpoint.REFERRAL_WELCOME_POPUP: (
        "popup",
        "The Referral Welcome Pop-Up can increase your referral conversions by up to 35%.",
    ),
    Touchpoint.EXTENSION: (
        "extension",
        "The extension captures referrals directly from social platforms.",
    ),
    Touchpoint.REFERRAL_FORM: (
        "form",
        "A dedicated referral page makes it easy for customers to share your brand.",
    ),
    Touchpoint.WHATSAPP_WHITELABELING: (
        "whatsapp/whitelabel",
        "White labeling increases trust and brand recognition.",
    ),
    Touchpoint.WHATSAPP_FOLLOW_UPS: (
        "whatsapp/followups",
        "WhatsApp follow-ups lift referral completions noticeably.",
    ),
    Touchpoint.EMAIL_WHITELABELING: (
        "email/whitelabel",
        "White labeled emails improve deliverability and brand consistency.",
    ),
    Touchpoint.EMAIL_FOLLOW_UPS: (
        "email/followups",
        "A five-touch email follow-up sequence is the best way to finish referrals.",
    ),
    Touchpoint.ABANDONED_CART_EMAIL: (
        "abandoned-cart/email",
        "Abandoned cart emails bring shoppers back to finish their purchase.",
    ),
    Touchpoint.ABANDONED_CART_WHATSAPP: (
        "abandoned-cart/whatsapp",
        "WhatsApp cart reminders bring shoppers back to finish their purchase.",
    ),
}


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    body: str


def render(
    channel: Channel,
    touchpoint_name: str,
    customer: Customer,
    override_text: Optional[str] = None,
    subject: Optional[str] = None,
) -> RenderedMessage:
    """
    Render the nudge body for a channel. Side-effect free.

    An override or an unknown touchpoint name falls back to the generic
    "custom" template.
    """
    touchpoint = Touchpoint.parse(touchpoint_name)
    if override_text or touchpoint is None:
        lines = _custom_lines(customer, override_text)
        default_subject = touchpoint.subject if touchpoint else CUSTOM_SUBJECT
    else:
        lines = _touchpoint_lines(customer, touchpoint)
        default_subject = touchpoint.subject

    body = _as_html(lines) if channel is Channel.EMAIL else "\n\n".join(lines)
    return RenderedMessage(subject=subject or default_subject, body=body)


def _touchpoint_lines(customer: Customer, touchpoint: Touchpoint) -> list:
    path, pitch = _COPY[touchpoint]
    return [
        f"Hey {customer.contact_name},",
        f"We noticed you haven't turned on your {touchpoint.label} yet.",
        pitch,
        f"Set it up here: {SETUP_BASE_URL}/{path}?id={customer.customer_id}",
        "Need help? Just reply and our customer success team will assist you.",
    ]


def _custom_lines(customer: Customer, override_text: Optional[str]) -> list:
    if override_text:
        return [override_text]
    return [
        f"Hey {customer.contact_name},",
        "Thank you for using ReferRush for your referral program.",
        "Please reach out if you have any questions or need help with your setup.",
    ]


def _as_html(lines: list) -> str:
    paragraphs = "".join(f"<p>{escape(line)}</p>" for line in lines)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{paragraphs}<p>Best,<br>The ReferRush Team</p></div>"
    )
