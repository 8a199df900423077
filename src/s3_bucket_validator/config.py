"""Runtime settings for the S3 Bucket Validator, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Settings shared by the CLI and the admission handler."""

    log_level: str = "WARNING"
    parallel: bool = False
    max_workers: int = 4
    metrics_file: str | None = None
    region: str = "us-east-1"
    endpoint_url: str | None = None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ValueError(f"{name} must be at least 1, got {number}")
    return number


def load_settings() -> Settings:
    """Load settings from environment variables.

    Environment Variables:
        S3_VALIDATOR_LOG_LEVEL: Logging level (default: WARNING)
        S3_VALIDATOR_PARALLEL: Run evaluators on a thread pool (default: false)
        S3_VALIDATOR_MAX_WORKERS: Thread pool size (default: 4)
        S3_VALIDATOR_METRICS_FILE: Write Prometheus metrics to this file
        AWS_REGION / AWS_DEFAULT_REGION: Region for live bucket reads (default: us-east-1)
        S3_ENDPOINT_URL: Custom S3 endpoint for live bucket reads

    Raises:
        ValueError: If a numeric variable is not a positive integer
    """
    return Settings(
        log_level=os.getenv("S3_VALIDATOR_LOG_LEVEL", "WARNING"),
        parallel=_env_bool("S3_VALIDATOR_PARALLEL", False),
        max_workers=_env_int("S3_VALIDATOR_MAX_WORKERS", 4),
        metrics_file=os.getenv("S3_VALIDATOR_METRICS_FILE") or None,
        region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
        endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
    )
