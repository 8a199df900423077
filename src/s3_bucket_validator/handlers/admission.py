"""Validating admission handler for Bucket custom resources."""

from __future__ import annotations

import logging
import os
from typing import Any

import kopf

from .. import metrics
from ..builders.bucket import create_bucket_config_from_spec
from ..config import load_settings
from ..constants import API_GROUP, API_VERSION, EVENT_REASON_ADMISSION_DENIED, PLURAL_BUCKETS
from ..diff import diff_configs, requires_replacement
from ..logging import log_validation_event, setup_structured_logging
from ..report import build_report
from ..utils.errors import MalformedConfig
from ..validator import validate

logger = logging.getLogger(__name__)


def _bucket_spec(spec: dict[str, Any], name: str | None) -> dict[str, Any]:
    bucket_spec = dict(spec or {})
    if not bucket_spec.get("name") and name:
        bucket_spec["name"] = name
    return bucket_spec


def _deny(bucket: str, message: str, **kwargs: Any) -> None:
    log_validation_event(
        logger,
        bucket,
        event="admission",
        reason=EVENT_REASON_ADMISSION_DENIED,
        message=message,
        level=logging.WARNING,
        **kwargs,
    )
    raise kopf.AdmissionError(message, code=422)


@kopf.on.validate(API_GROUP, API_VERSION, PLURAL_BUCKETS, id="validate-bucket-config")
def validate_bucket(
    spec: dict[str, Any],
    name: str | None,
    old: dict[str, Any] | None,
    operation: str | None,
    warnings: list[str],
    **kwargs: Any,
) -> None:
    """Reject Bucket resources whose configuration has errors.

    Warnings are returned to the client as admission warnings. On UPDATE the
    bucket already exists, and toggling Object Lock is rejected.
    """
    is_update = operation == "UPDATE"
    bucket_spec = _bucket_spec(spec, name)
    bucket = bucket_spec.get("name") or "unknown"

    try:
        config = create_bucket_config_from_spec(bucket_spec, is_existing_bucket=is_update)
    except MalformedConfig as e:
        metrics.malformed_configs_total.inc()
        _deny(bucket, f"Malformed bucket configuration: {e}", field=e.field)
        return

    if is_update and old:
        try:
            current = create_bucket_config_from_spec(
                _bucket_spec(old.get("spec", {}), name), is_existing_bucket=True
            )
        except MalformedConfig:
            # An old object stored before this webhook existed may not parse
            current = None
        if current is not None:
            changes = diff_configs(current, config)
            if requires_replacement(changes):
                _deny(bucket, "objectLock.enabled can only be set when the bucket is created")

    settings = load_settings()
    result = validate(config, parallel=settings.parallel, max_workers=settings.max_workers)
    report = build_report(result, bucket_name=config.name)

    for finding in report["findings"]:
        if finding["severity"] == "warning":
            warnings.append(f"{finding['field']}: {finding['message']}")

    if not report["passed"]:
        errors = [f"{f['field']}: {f['message']}" for f in report["findings"] if f["severity"] == "error"]
        _deny(bucket, "; ".join(errors), error_count=report["errorCount"])


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the admission webhook server."""
    setup_structured_logging(load_settings().log_level)

    settings.posting.level = logging.WARNING
    settings.admission.server = kopf.WebhookServer(
        port=int(os.getenv("WEBHOOK_PORT", "9443")),
        certfile=os.getenv("WEBHOOK_CERT_FILE"),
        pkeyfile=os.getenv("WEBHOOK_KEY_FILE"),
    )
    settings.admission.managed = os.getenv("WEBHOOK_CONFIGURATION_NAME", "bucket-validator.s3.cloud37.dev")
