"""Tests for log context redaction."""

from roibrain.core.logging import redact_pii


def test_email_values_are_redacted():
    assert redact_pii("owner@smile-dental.com") == "[REDACTED_EMAIL]"
    assert redact_pii({"note": "reach me at jo.doe+audit@clinic.co.uk"}) == {
        "note": "[REDACTED_EMAIL]"
    }


def test_ordinary_values_with_at_and_dot_are_kept():
    for value in ("v1.2@build", "dental.missed_calls_high", "2 chairs @ 3.5 hrs", "@team.lead"):
        assert redact_pii(value) == value


def test_pii_keys_and_phone_numbers_are_masked():
    redacted = redact_pii({"email": "x", "contact": ["+1 (555) 010-2030"], "vertical": "hvac"})

    assert redacted == {"email": "[REDACTED]", "contact": ["[REDACTED_PHONE]"], "vertical": "hvac"}
