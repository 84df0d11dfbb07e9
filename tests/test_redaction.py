"""Tests for redaction helpers."""

from hotelcore.observability.redaction import (
    redact_string,
    redact_value,
    safe_log_context,
)


class TestRedaction:
    def test_redact_phone_number(self):
        result = redact_string("Call me at +55 11 99999-8888")
        assert "99999" not in result
        assert "[REDACTED]" in result

    def test_redact_email(self):
        result = redact_string("Email: guest@example.com")
        assert "guest@example.com" not in result
        assert "[REDACTED]" in result

    def test_redact_card_number(self):
        result = redact_string("card 4111 1111 1111 1111 declined")
        assert "4111" not in result

    def test_redact_value_dict_only_keys(self):
        result = redact_value({"guest_name": "Ana", "nights": 3})
        assert "Ana" not in result
        assert "guest_name" in result

    def test_redact_value_list_only_len(self):
        result = redact_value(["a", "b", "c"])
        assert "len=3" in result

    def test_redact_value_scalars(self):
        assert redact_value(None) == "null"
        assert redact_value(True) == "true"
        assert redact_value(7) == "7"

    def test_pii_keys_always_redacted(self):
        ctx = safe_log_context(guest_name="Ana Souza", guest_email="x", booking_id="b-1")
        assert ctx["guest_name"] == "[REDACTED]"
        assert ctx["guest_email"] == "[REDACTED]"
        assert ctx["booking_id"] == "b-1"

    def test_safe_log_context_stringifies(self):
        ctx = safe_log_context(phone="+5511999998888", count=42)
        assert ctx["phone"] == "[REDACTED]"
        assert ctx["count"] == "42"
