"""Tests for JID normalization priority rules and validation."""

import pytest

from wagate.whatsapp.jid import (
    InvalidIdentifierError,
    InvalidReason,
    normalize,
    normalize_many,
)


class TestPassthrough:
    """Already-suffixed input is returned unchanged."""

    @pytest.mark.parametrize(
        "jid",
        [
            "6281234567890@s.whatsapp.net",
            "120363123456789012@g.us",
            "188630735790116@lid",
            "status@broadcast",
        ],
    )
    def test_suffixed_input_unchanged(self, jid):
        assert normalize(jid) == jid

    def test_surrounding_whitespace_trimmed(self):
        assert normalize("  188630735790116@lid \n") == "188630735790116@lid"

    def test_normalize_is_idempotent(self):
        once = normalize("0812-3456-7890")
        assert normalize(once) == once

    def test_local_part_not_rewritten(self):
        """Passthrough never applies region rules to the local part."""
        assert normalize("081234567890@s.whatsapp.net") == "081234567890@s.whatsapp.net"


class TestPhoneNumbers:
    """Phone path: region normalization then E.164 bounds."""

    def test_leading_zero_replaced_by_country_code(self):
        assert normalize("081234567890") == "6281234567890@s.whatsapp.net"

    def test_international_format_kept(self):
        assert normalize("6281234567890") == "6281234567890@s.whatsapp.net"

    def test_plus_prefix_dropped(self):
        assert normalize("+6281234567890") == "6281234567890@s.whatsapp.net"

    def test_separators_stripped(self):
        assert normalize("+62 812-3456-7890") == "6281234567890@s.whatsapp.net"
        assert normalize("0812-3456-7890") == "6281234567890@s.whatsapp.net"
        assert normalize("(0812) 3456 7890") == "6281234567890@s.whatsapp.net"

    def test_domestic_mobile_gets_country_code(self):
        assert normalize("81234567890") == "6281234567890@s.whatsapp.net"

    def test_other_country_passes_through(self):
        assert normalize("+1 415 555 2671") == "14155552671@s.whatsapp.net"

    def test_fifteen_digits_accepted(self):
        assert normalize("621234567890123") == "621234567890123@s.whatsapp.net"


class TestLinkedIdHeuristic:
    """15-18 digits not starting with 62 or 1 become linked IDs."""

    def test_fifteen_digit_lid(self):
        assert normalize("288630735790116") == "288630735790116@lid"

    def test_reserved_prefix_1_is_phone(self):
        """Leading 1 marks a country code, so the phone path applies."""
        assert normalize("188630735790116") == "188630735790116@s.whatsapp.net"

    def test_sixteen_digits_is_lid(self):
        assert normalize("2345678901234567") == "2345678901234567@lid"

    def test_eighteen_digits_without_reserved_prefix_is_lid(self):
        assert normalize("987654321098765432") == "987654321098765432@lid"

    def test_reserved_prefix_62_not_lid(self):
        """A 62-prefixed 15-digit string is a phone number."""
        assert normalize("628123456789012") == "628123456789012@s.whatsapp.net"

    def test_formatted_digits_not_lid(self):
        """The LID rule only applies to purely numeric input."""
        with pytest.raises(InvalidIdentifierError):
            normalize("2345-6789-0123-4567")


class TestGroupHeuristic:
    """18+ digit ids (optionally sharded) become groups."""

    def test_eighteen_digit_group(self):
        assert normalize("120363123456789012") == "120363123456789012@g.us"

    def test_group_with_shard_suffix(self):
        assert (
            normalize("120363123456789012-1234567890")
            == "120363123456789012-1234567890@g.us"
        )

    def test_nineteen_digits_is_group(self):
        assert normalize("9876543210987654321") == "9876543210987654321@g.us"

    def test_seventeen_digits_with_reserved_prefix_too_long(self):
        """Below the group threshold and excluded from LID: phone path."""
        with pytest.raises(InvalidIdentifierError) as exc_info:
            normalize("12036312345678901")
        assert exc_info.value.reason == InvalidReason.TOO_LONG


class TestInvalidInput:
    """normalize() fails with a typed reason."""

    def test_too_short(self):
        with pytest.raises(InvalidIdentifierError, match="too short") as exc_info:
            normalize("123")
        assert exc_info.value.reason == InvalidReason.TOO_SHORT

    def test_too_long(self):
        with pytest.raises(InvalidIdentifierError, match="too long") as exc_info:
            normalize("6212345678901234")
        assert exc_info.value.reason == InvalidReason.TOO_LONG

    def test_non_numeric(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            normalize("not-a-number")
        assert exc_info.value.reason == InvalidReason.NON_NUMERIC

    def test_embedded_plus_is_non_numeric(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            normalize("62+81234567890")
        assert exc_info.value.reason == InvalidReason.NON_NUMERIC

    @pytest.mark.parametrize("value", ["", "   ", None, 6281234567890])
    def test_empty_or_non_string(self, value):
        with pytest.raises(InvalidIdentifierError, match="required") as exc_info:
            normalize(value)
        assert exc_info.value.reason == InvalidReason.EMPTY_INPUT

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            normalize("123")


class TestNormalizeMany:
    def test_normalizes_each(self):
        assert normalize_many(["081234567890", "120363123456789012@g.us"]) == [
            "6281234567890@s.whatsapp.net",
            "120363123456789012@g.us",
        ]

    def test_fails_on_first_invalid(self):
        with pytest.raises(InvalidIdentifierError):
            normalize_many(["081234567890", "123"])
