"""Utility functions for the S3 Bucket Validator."""

from .errors import (
    EvaluatorError,
    MalformedConfig,
    sanitize_dict,
    sanitize_error_message,
    sanitize_exception,
)

__all__ = [
    "MalformedConfig",
    "EvaluatorError",
    "sanitize_error_message",
    "sanitize_exception",
    "sanitize_dict",
]
