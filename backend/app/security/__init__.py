from app.security.redaction import mask_api_key, redact_sensitive_text

__all__ = [
    "mask_api_key",
    "redact_sensitive_text",
]
