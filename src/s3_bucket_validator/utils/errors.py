"""Error types and sanitization utilities to prevent information leakage."""

from __future__ import annotations

import re
from typing import Any


class MalformedConfig(ValueError):
    """Raised when a bucket configuration cannot be constructed.

    Attributes:
        field: Dotted path of the offending field (e.g. ``objectLock.retention``)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class EvaluatorError(RuntimeError):
    """Raised when a rule evaluator fails on well-formed input."""

    def __init__(self, rule: str, error: Exception) -> None:
        super().__init__(f"Evaluator {rule} failed: {sanitize_exception(error)}")
        self.rule = rule


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"access[_\s]?key[_\s]?id[:\s]+([A-Z0-9]{20})",
    r"secret[_\s]?access[_\s]?key[:\s]+([A-Za-z0-9/+=]{40})",
    r"session[_\s]?token[:\s]+([A-Za-z0-9/+=]+)",
]

# Account IDs embedded in ARNs, e.g. arn:aws:kms:us-east-1:123456789012:key/...
ARN_ACCOUNT_PATTERN = r"(arn:aws[a-zA-Z\-]*:[a-z0-9\-]+:[a-z0-9\-]*:)(\d{12})(:)"

# Fields to redact completely
SENSITIVE_FIELDS = {
    "access_key_id",
    "secret_access_key",
    "session_token",
    "password",
    "secret",
    "credentials",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"[REDACTED]", sanitized, flags=re.IGNORECASE)

    sanitized = re.sub(ARN_ACCOUNT_PATTERN, r"\1[REDACTED]\3", sanitized)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    if sensitive_keys is None:
        sensitive_keys = set()

    all_sensitive = SENSITIVE_FIELDS | sensitive_keys
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
