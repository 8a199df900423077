"""Tests for structured logging and tracing helpers."""

from __future__ import annotations

import json
import logging

import pytest

from s3_bucket_validator import tracing
from s3_bucket_validator.logging import log_validation_event


class TestLogValidationEvent:
    """Test log_validation_event."""

    def test_json_payload(self, caplog: pytest.LogCaptureFixture):
        """Test that events are logged as a single JSON object."""
        logger = logging.getLogger("test.events")

        with caplog.at_level(logging.INFO, logger="test.events"):
            log_validation_event(
                logger,
                "photos",
                event="validate",
                reason="ValidationSucceeded",
                message="Validation completed",
                error_count=0,
            )

        payload = json.loads(caplog.records[0].getMessage())
        assert payload == {
            "component": "s3-bucket-validator",
            "bucket": "photos",
            "event": "validate",
            "reason": "ValidationSucceeded",
            "message": "Validation completed",
            "error_count": 0,
        }

    def test_account_ids_scrubbed(self, caplog: pytest.LogCaptureFixture):
        """Test that ARNs in messages are sanitized."""
        logger = logging.getLogger("test.events")

        with caplog.at_level(logging.WARNING, logger="test.events"):
            log_validation_event(
                logger,
                "photos",
                event="error",
                reason="ValidationFailed",
                message="denied for arn:aws:iam::111122223333:role/ci",
                level=logging.WARNING,
            )

        assert "111122223333" not in caplog.text


class TestTracing:
    """Test tracing helpers when tracing is disabled."""

    def test_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch):
        """Test that tracing stays off without OTEL_TRACES_ENABLED."""
        monkeypatch.delenv("OTEL_TRACES_ENABLED", raising=False)
        tracing.initialize_tracing()
        assert tracing.get_tracer() is None

    def test_span_without_tracer(self):
        """Test that trace_span yields None when tracing is off."""
        with tracing.trace_span("noop", attributes={"bucket.name": "photos"}) as span:
            assert span is None
