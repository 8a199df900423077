"""Validator orchestrator: runs every registered evaluator against one config."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from . import metrics
from .constants import (
    EVENT_REASON_EVALUATOR_FAILED,
    EVENT_REASON_VALIDATE_FAILED,
    EVENT_REASON_VALIDATE_STARTED,
    EVENT_REASON_VALIDATE_SUCCEEDED,
)
from .logging import log_validation_event
from .models import BucketConfig, Finding, ValidationResult
from .rules import EVALUATORS, Evaluator
from .tracing import add_span_attribute, trace_span
from .utils.errors import EvaluatorError, sanitize_exception

logger = logging.getLogger(__name__)


def _run_evaluator(evaluator: Evaluator, config: BucketConfig) -> list[Finding]:
    """Run a single evaluator, turning any escaping exception into EvaluatorError."""
    with trace_span("evaluate_rule", attributes={"rule.name": evaluator.name}):
        try:
            return list(evaluator(config))
        except Exception as e:
            log_validation_event(
                logger,
                config.name,
                event="error",
                reason=EVENT_REASON_EVALUATOR_FAILED,
                message=f"Evaluator {evaluator.name} raised on well-formed input",
                level=logging.ERROR,
                rule=evaluator.name,
                error=sanitize_exception(e),
                error_type=type(e).__name__,
            )
            raise EvaluatorError(evaluator.name, e) from e


def _run_parallel(
    evaluators: Sequence[Evaluator],
    config: BucketConfig,
    max_workers: int,
) -> list[list[Finding]]:
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(_run_evaluator, evaluator, config): idx
            for idx, evaluator in enumerate(evaluators)
        }
        indexed = []
        for future, idx in futures.items():
            indexed.append((idx, future.result()))
    # Restore registration order regardless of completion order
    indexed.sort(key=lambda item: item[0])
    return [findings for _, findings in indexed]


def validate(
    config: BucketConfig,
    evaluators: Sequence[Evaluator] | None = None,
    parallel: bool = False,
    max_workers: int = 4,
) -> ValidationResult:
    """Validate a bucket configuration.

    Every evaluator runs to completion; findings are concatenated in
    registration order and never re-sorted by severity.

    Args:
        config: Immutable bucket configuration
        evaluators: Evaluators to run (default: every registered evaluator)
        parallel: Run evaluators on a thread pool
        max_workers: Thread pool size when ``parallel`` is set

    Returns:
        Ordered findings with error and warning counts

    Raises:
        EvaluatorError: If an evaluator fails, which is a defect in that evaluator
    """
    if evaluators is None:
        evaluators = EVALUATORS

    log_validation_event(
        logger,
        config.name,
        event="validate",
        reason=EVENT_REASON_VALIDATE_STARTED,
        message="Validation started",
        level=logging.DEBUG,
        evaluators=len(evaluators),
        parallel=parallel,
    )

    start_time = time.time()
    with trace_span("validate_bucket", attributes={"bucket.name": config.name}):
        if parallel and len(evaluators) > 1:
            per_evaluator = _run_parallel(evaluators, config, max_workers)
        else:
            per_evaluator = [_run_evaluator(evaluator, config) for evaluator in evaluators]
        add_span_attribute("validation.evaluators", len(evaluators))

    findings: list[Finding] = []
    for batch in per_evaluator:
        findings.extend(batch)
    result = ValidationResult.from_findings(findings)

    metrics.validation_duration_seconds.observe(time.time() - start_time)
    metrics.validations_total.labels(result="passed" if result.passed else "failed").inc()
    for finding in result.findings:
        metrics.findings_total.labels(rule=finding.rule, severity=finding.severity).inc()

    log_validation_event(
        logger,
        config.name,
        event="validate",
        reason=EVENT_REASON_VALIDATE_SUCCEEDED if result.passed else EVENT_REASON_VALIDATE_FAILED,
        message="Validation completed",
        level=logging.INFO if result.passed else logging.WARNING,
        error_count=result.error_count,
        warning_count=result.warning_count,
    )
    return result
