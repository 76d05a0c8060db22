"""WhatsApp JID normalization and classification.

Turns user-supplied phone numbers or raw identifiers into the canonical
addressable form (local part + suffix) and classifies any JID by kind.

Everything here is pure: no I/O, no shared state, safe to call from any task.
"""

import re
from enum import Enum
from typing import Any, Iterable

USER_SUFFIX = "@s.whatsapp.net"
GROUP_SUFFIX = "@g.us"
LID_SUFFIX = "@lid"
BROADCAST_SUFFIX = "@broadcast"

# Passthrough order matters: @lid before @g.us before @broadcast before @s.whatsapp.net
_PASSTHROUGH_SUFFIXES = (LID_SUFFIX, GROUP_SUFFIX, BROADCAST_SUFFIX, USER_SUFFIX)

# Region rules (Indonesia)
COUNTRY_CODE = "62"
DOMESTIC_MOBILE_PREFIX = "8"
DOMESTIC_MOBILE_MIN_LEN = 9
DOMESTIC_MOBILE_MAX_LEN = 13

# Leading digits that mark a phone number rather than a linked ID
_RESERVED_LID_PREFIXES = (COUNTRY_CODE, "1")

# E.164 bounds for the final number (country code included)
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

_LID_PATTERN = re.compile(r"^\d{15,18}$")
_GROUP_PATTERN = re.compile(r"^\d{18,}(-\d+)?$")
_DIGITS_PATTERN = re.compile(r"^\d+$")
_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_NON_GROUP_CHARS = re.compile(r"[^\d-]")


class JidKind(str, Enum):
    """Endpoint kind, derived from the JID suffix alone."""

    USER = "user"
    GROUP = "group"
    LID = "lid"
    BROADCAST = "broadcast"
    UNKNOWN = "unknown"


class InvalidReason(str, Enum):
    EMPTY_INPUT = "empty_input"
    NON_NUMERIC = "non_numeric"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"


_REASON_MESSAGES = {
    InvalidReason.EMPTY_INPUT: "Phone number is required",
    InvalidReason.NON_NUMERIC: "Invalid phone number format",
    InvalidReason.TOO_SHORT: "Phone number too short",
    InvalidReason.TOO_LONG: "Phone number too long",
}


class InvalidIdentifierError(ValueError):
    """Raised when input cannot be turned into a canonical JID."""

    def __init__(self, reason: InvalidReason) -> None:
        super().__init__(_REASON_MESSAGES[reason])
        self.reason = reason


def is_valid_jid(value: Any) -> bool:
    """Check if value already ends with one of the four WhatsApp suffixes."""
    if not isinstance(value, str):
        return False
    return value.endswith(_PASSTHROUGH_SUFFIXES)


def is_user_jid(value: str) -> bool:
    return value.endswith(USER_SUFFIX)


def is_group_jid(value: str) -> bool:
    return value.endswith(GROUP_SUFFIX)


def is_lid_jid(value: str) -> bool:
    return value.endswith(LID_SUFFIX)


def is_broadcast_jid(value: str) -> bool:
    return value.endswith(BROADCAST_SUFFIX)


def classify(jid: Any) -> JidKind:
    """Classify a JID by suffix. Never raises.

    Args:
        jid: Canonical or partial identifier.

    Returns:
        JidKind for the matched suffix, UNKNOWN otherwise.
    """
    if not isinstance(jid, str):
        return JidKind.UNKNOWN
    if jid.endswith(USER_SUFFIX):
        return JidKind.USER
    if jid.endswith(GROUP_SUFFIX):
        return JidKind.GROUP
    if jid.endswith(LID_SUFFIX):
        return JidKind.LID
    if jid.endswith(BROADCAST_SUFFIX):
        return JidKind.BROADCAST
    return JidKind.UNKNOWN


_KIND_SUFFIX = {
    JidKind.USER: USER_SUFFIX,
    JidKind.GROUP: GROUP_SUFFIX,
    JidKind.LID: LID_SUFFIX,
    JidKind.BROADCAST: BROADCAST_SUFFIX,
}


def extract_local_part(jid: str | None) -> str | None:
    """Strip the WhatsApp suffix from a JID.

    Args:
        jid: Identifier, possibly without a suffix.

    Returns:
        The local part for a known suffix, None for None/empty input,
        or the input verbatim when no suffix matches.
    """
    if not jid:
        return None

    suffix = _KIND_SUFFIX.get(classify(jid))
    if suffix is None:
        return jid
    return jid[: -len(suffix)]


def _clean_phone(value: str) -> str:
    """Keep digits (and '+'), then drop a leading '+'."""
    cleaned = _NON_PHONE_CHARS.sub("", value)
    return cleaned[1:] if cleaned.startswith("+") else cleaned


def _apply_region(cleaned: str) -> str:
    if cleaned.startswith("0"):
        return COUNTRY_CODE + cleaned[1:]

    if cleaned.startswith(COUNTRY_CODE):
        return cleaned

    if (
        cleaned.startswith(DOMESTIC_MOBILE_PREFIX)
        and DOMESTIC_MOBILE_MIN_LEN <= len(cleaned) <= DOMESTIC_MOBILE_MAX_LEN
    ):
        return COUNTRY_CODE + cleaned

    return cleaned


def _looks_like_lid(value: str) -> bool:
    return bool(_LID_PATTERN.match(value)) and not value.startswith(
        _RESERVED_LID_PREFIXES
    )


def normalize(raw: Any) -> str:
    """Normalize a phone number or raw identifier to a canonical JID.

    Rules are applied in strict priority order; the first match wins:

    1. Already suffixed (@lid, @g.us, @broadcast, @s.whatsapp.net) -> as-is
    2. 15-18 digits, not starting with 62 or 1 -> linked ID (@lid)
    3. 18+ digits, optionally "-<digits>" -> group (@g.us)
    4. Phone number, region-normalized -> user (@s.whatsapp.net)

    Examples:
        "081234567890"            -> "6281234567890@s.whatsapp.net"
        "+62 812-3456-7890"       -> "6281234567890@s.whatsapp.net"
        "188630735790116"         -> "188630735790116@lid"
        "120363123456789012"      -> "120363123456789012@g.us"
        "status@broadcast"        -> "status@broadcast"

    Args:
        raw: User-supplied phone number or identifier.

    Returns:
        Canonical JID string.

    Raises:
        InvalidIdentifierError: If input is empty, non-numeric after cleanup,
            or outside the 10-15 digit E.164 range.
    """
    if not raw or not isinstance(raw, str):
        raise InvalidIdentifierError(InvalidReason.EMPTY_INPUT)

    trimmed = raw.strip()
    if not trimmed:
        raise InvalidIdentifierError(InvalidReason.EMPTY_INPUT)

    for suffix in _PASSTHROUGH_SUFFIXES:
        if trimmed.endswith(suffix):
            return trimmed

    if _looks_like_lid(trimmed):
        return trimmed + LID_SUFFIX

    group_candidate = _NON_GROUP_CHARS.sub("", trimmed)
    if _GROUP_PATTERN.match(group_candidate):
        return group_candidate + GROUP_SUFFIX

    number = _apply_region(_clean_phone(trimmed))

    if not _DIGITS_PATTERN.match(number):
        raise InvalidIdentifierError(InvalidReason.NON_NUMERIC)

    if len(number) < MIN_PHONE_DIGITS:
        raise InvalidIdentifierError(InvalidReason.TOO_SHORT)

    if len(number) > MAX_PHONE_DIGITS:
        raise InvalidIdentifierError(InvalidReason.TOO_LONG)

    return number + USER_SUFFIX


def normalize_many(values: Iterable[str]) -> list[str]:
    """Normalize a batch of identifiers (e.g. message mentions).

    Raises:
        InvalidIdentifierError: On the first invalid entry.
    """
    return [normalize(value) for value in values]


def format_for_display(value: str) -> str:
    """Format a phone number or JID for humans.

    "6281234567890" -> "+62 812-3456-7890". Numbers outside the region rule
    fall back to "+<digits>".
    """
    local = extract_local_part(value) or ""
    cleaned = _clean_phone(local)

    if cleaned.startswith(COUNTRY_CODE) and len(cleaned) >= 11:
        rest = cleaned[len(COUNTRY_CODE):]
        if len(rest) <= 4:
            return f"+{COUNTRY_CODE} {rest}"
        if len(rest) <= 8:
            return f"+{COUNTRY_CODE} {rest[:3]}-{rest[3:]}"
        return f"+{COUNTRY_CODE} {rest[:3]}-{rest[3:7]}-{rest[7:]}"

    return f"+{cleaned}"
