"""Redaction helpers for safe logging. All external data must pass through these."""

import hashlib
import re
from typing import Any

# Patterns that should never appear in logs
_JID_PATTERN = re.compile(r"[\w.\-]+@(?:s\.whatsapp\.net|g\.us|lid|broadcast|c\.us)")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact JIDs and phone numbers from a string."""
    result = _JID_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
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
    if isinstance(value, dict):
        # For dicts, only log keys (structure), never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    # For any other type, only log type name
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}


def hash_identifier(value: str) -> str:
    """Create non-reversible hash for logging. Returns first 12 chars of sha256."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]
