from __future__ import annotations

from app.security import mask_api_key, redact_sensitive_text


def test_redact_sensitive_assignments_and_bearer_tokens() -> None:
    raw = (
        "X-API-Key: 5b7e2f0c-key api_key=abc123 secret=topsecret "
        "password=hunter2 Authorization: Bearer token-value"
    )
    redacted = redact_sensitive_text(raw)

    assert "5b7e2f0c-key" not in redacted
    assert "abc123" not in redacted
    assert "topsecret" not in redacted
    assert "hunter2" not in redacted
    assert "token-value" not in redacted
    assert "***REDACTED***" in redacted


def test_mask_api_key_keeps_only_a_short_prefix() -> None:
    key = "0f3c9a1e-7d44-4b2a-9e61-2c8d5f7a9b10"

    masked = mask_api_key(key)

    assert masked.startswith("0f3c")
    assert key not in masked
    assert mask_api_key("abc") == "***REDACTED***"
