"""Redaction helpers for safe logging. Guest data must pass through these.

Bookings carry guest names, emails and phone numbers; payment callbacks may
echo card fragments. None of that may reach log output.
"""

import re
from typing import Any, Mapping

_CARD_PATTERN = re.compile(r"\b(?:\d[ -]?){13,19}\b")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Keys whose values are never logged, whatever they look like
PII_KEYS = frozenset({"guest_name", "guest_email", "guest_phone", "email", "phone"})


def redact_string(value: str) -> str:
    """Redact PII patterns (cards first, then phones and emails)."""
    result = _CARD_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, Mapping):
        # structure only, never values
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {
        k: (_REDACTED if k in PII_KEYS else redact_value(v))
        for k, v in kwargs.items()
    }
