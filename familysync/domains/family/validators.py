"""Local validation and invite code generation.

Validation runs before any backend round trip and reports the failing
field through ValidationFailedError.
"""

import re
import secrets
import string
import time

from familysync.core.config import settings
from familysync.core.exceptions import ValidationFailedError

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_PATTERN = re.compile(r"^[A-Z0-9]{16}-[A-Z0-9]+$")

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in uppercase base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_invite_code(length: int | None = None, timestamp: int | None = None) -> str:
    """Generate an invite code of the form ``CODE-TIMESTAMP``.

    Args:
        length: Number of random characters (16 by default)
        timestamp: Unix time to encode (now by default)

    Returns:
        Random uppercase alphanumerics, a dash, and the base 36 timestamp
    """
    size = length or settings.INVITE_CODE_LENGTH
    code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(size))
    ts = int(time.time()) if timestamp is None else timestamp
    return f"{code}-{to_base36(ts)}"


def validate_family_name(name: str) -> str:
    """Validate a family name and return it trimmed."""
    trimmed = (name or "").strip()
    low, high = settings.FAMILY_NAME_MIN_LENGTH, settings.FAMILY_NAME_MAX_LENGTH
    if not low <= len(trimmed) <= high:
        raise ValidationFailedError(
            "family_name",
            f"Family name must be between {low} and {high} characters",
        )
    return trimmed


def normalize_invite_code(code: str) -> str:
    return (code or "").strip().upper()


def validate_invite_code(code: str) -> str:
    """Validate an invite code and return it normalized."""
    normalized = normalize_invite_code(code)
    if not INVITE_CODE_PATTERN.match(normalized):
        raise ValidationFailedError("invite_code", "Invite code format is not valid")
    return normalized


def validate_profile_name(name: str) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationFailedError("name", "Name cannot be empty")
    return trimmed
