from __future__ import annotations

import re

_REPLACEMENT = "***REDACTED***"

# Keep the key name visible, hide the value.
_ASSIGNMENT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)\b(x-api-key)\s*[:=]\s*([^\s,;]+)"),
    re.compile(r"(?i)\b(api[_-]?key)\s*[:=]\s*([^\s,;]+)"),
    re.compile(r"(?i)\b(secret(?:[_-]?key)?)\s*[:=]\s*([^\s,;]+)"),
    re.compile(r"(?i)\b(password)\s*[:=]\s*([^\s,;]+)"),
)

_BEARER_PATTERN = re.compile(r"(?i)\b(bearer)\s+([A-Za-z0-9\-_\.=]+)")


def redact_sensitive_text(value: str) -> str:
    redacted = value
    for pattern in _ASSIGNMENT_PATTERNS:
        redacted = pattern.sub(lambda match: f"{match.group(1)}={_REPLACEMENT}", redacted)
    redacted = _BEARER_PATTERN.sub(lambda match: f"{match.group(1)} {_REPLACEMENT}", redacted)
    return redacted


def mask_api_key(value: str) -> str:
    """Short, non-reversible form of a key for log lines: first four characters only."""
    normalized = value.strip()
    if len(normalized) <= 4:
        return _REPLACEMENT
    return f"{normalized[:4]}{_REPLACEMENT}"
