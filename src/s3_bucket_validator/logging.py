"""Structured logging configuration for the S3 Bucket Validator."""

import json
import logging
import sys
from typing import Any

from .constants import COMPONENT
from .utils.errors import sanitize_dict


def setup_structured_logging(level: str = "WARNING") -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def log_validation_event(
    logger: logging.Logger,
    bucket: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured validation event."""
    log_data = {
        "component": COMPONENT,
        "bucket": bucket,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(kwargs)
    logger.log(level, json.dumps(sanitize_dict(log_data), default=str))
