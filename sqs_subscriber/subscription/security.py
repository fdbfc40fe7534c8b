"""Redaction helpers for logged message bodies and error details."""

from __future__ import annotations

import logging
import re
from typing import Any

_MAX_LOGGED_BODY = 512
_SENSITIVE_KEYS = ("password", "passwd", "token", "secret", "api_key", "apikey", "credential")
_KEY_VALUE_PATTERN = re.compile(
    r"(?i)\b(password|passwd|token|secret|api[_-]?key|aws_secret_access_key)\b\s*([:=])\s*([^\s,;&]+)"
)
_JSON_PAIR_PATTERN = re.compile(
    r'(?i)("(?:[a-z_]*)(?:password|passwd|token|secret|api_?key)(?:[a-z_]*)"\s*:\s*)"[^"]*"'
)
_BEARER_PATTERN = re.compile(r"(?i)\bbearer\s+\S+")
_AWS_ACCESS_KEY_PATTERN = re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b")


def redact_sensitive_text(text: str) -> str:
    """Mask credentials embedded in free text or JSON."""
    redacted = _JSON_PAIR_PATTERN.sub(lambda match: f'{match.group(1)}"***"', text)
    redacted = _KEY_VALUE_PATTERN.sub(lambda match: f"{match.group(1)}{match.group(2)}***", redacted)
    redacted = _BEARER_PATTERN.sub("Bearer ***", redacted)
    return _AWS_ACCESS_KEY_PATTERN.sub("AKIA***", redacted)


def redact_sensitive_data(value: Any) -> Any:
    """Recursively mask values stored under credential-like keys."""
    if isinstance(value, dict):
        return {
            key: "***" if any(marker in str(key).lower() for marker in _SENSITIVE_KEYS) else redact_sensitive_data(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(redact_sensitive_data(item) for item in value)
    if isinstance(value, str):
        return redact_sensitive_text(value)
    return value


def redact_error_message(error: Any) -> str:
    return redact_sensitive_text(str(error))


def redact_body(body: Any, limit: int = _MAX_LOGGED_BODY) -> str:
    """Render a message body for logs: redacted and truncated to ``limit`` characters."""
    if isinstance(body, bytes):
        text = body.decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        text = repr(redact_sensitive_data(body))
    text = redact_sensitive_text(text)
    if len(text) > limit:
        return f"{text[:limit]}...({len(text) - limit} more chars)"
    return text


class SensitiveDataLogFilter(logging.Filter):
    """Logging filter that renders and redacts records before they are emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            safe_args: Any
            if isinstance(record.args, dict):
                safe_args = redact_sensitive_data(record.args)
            else:
                safe_args = tuple(redact_sensitive_data(item) for item in record.args)
            try:
                rendered = str(record.msg) % safe_args
            except (TypeError, ValueError):
                rendered = f"{record.msg} {safe_args!r}"
            record.msg = redact_sensitive_text(rendered)
            record.args = ()
        else:
            record.msg = redact_sensitive_text(str(record.msg))
        return True
