"""
Field validation helpers used by entities and the REST layer.
"""

import re
from typing import Optional

from .exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
ID_PATTERN = re.compile(r"^[A-Z]{1,3}\d{3,6}$")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_valid_phone(phone: Optional[str]) -> bool:
    """Accept E.164-style numbers; spaces, dashes and parentheses are ignored."""
    if not phone:
        return False
    digits = re.sub(r"[\s\-()]", "", phone)
    return PHONE_PATTERN.match(digits) is not None


def is_valid_id(value: Optional[str]) -> bool:
    """IDs are one to three capitals followed by three to six digits, e.g. ``EV001``."""
    return bool(value) and ID_PATTERN.match(value) is not None


def is_not_blank(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def is_positive(value: float) -> bool:
    return value > 0


def is_in_range(value: float, minimum: float, maximum: float) -> bool:
    return minimum <= value <= maximum


def require(condition: bool, message: str) -> None:
    """Raise ValidationError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ValidationError(message)
