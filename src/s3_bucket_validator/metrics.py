"""Prometheus metrics for the S3 Bucket Validator."""

from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

# Validation metrics
validations_total = Counter(
    "s3_bucket_validator_validations_total",
    "Total number of validations",
    ["result"],
)

validation_duration_seconds = Histogram(
    "s3_bucket_validator_validation_duration_seconds",
    "Duration of validations in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
)

findings_total = Counter(
    "s3_bucket_validator_findings_total",
    "Total number of findings reported",
    ["rule", "severity"],
)

malformed_configs_total = Counter(
    "s3_bucket_validator_malformed_configs_total",
    "Total number of configurations rejected at construction time",
)

# AWS API call metrics
api_call_total = Counter(
    "s3_bucket_validator_api_call_total",
    "Total number of AWS API calls",
    ["operation", "result"],
)

api_call_duration_seconds = Histogram(
    "s3_bucket_validator_api_call_duration_seconds",
    "Duration of AWS API calls in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)


def write_metrics(path: str) -> None:
    """Write the default registry to a node-exporter textfile."""
    write_to_textfile(path, REGISTRY)
