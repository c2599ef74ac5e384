"""Recipient format checks for manual nudges."""

import re

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
WHATSAPP_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")


def is_valid_email(value: str) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value))


def is_valid_whatsapp_number(value: str) -> bool:
    """Digits only, optional leading '+', 10 to 15 digits."""
    return isinstance(value, str) and bool(WHATSAPP_PATTERN.match(value))
