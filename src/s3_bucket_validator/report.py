"""Report formatting for validation results.

Pure transformations only; writing a report anywhere is the caller's job.
"""

from __future__ import annotations

import json
from typing import Any

from .models import ValidationResult


def build_report(result: ValidationResult, bucket_name: str | None = None) -> dict[str, Any]:
    """Convert a validation result into a structured report.

    Args:
        result: Validation result
        bucket_name: Optional bucket name to include

    Returns:
        Report with ``passed``, counts, ordered ``findings`` and ``byField``
        (field path to messages, in first-appearance order)
    """
    by_field: dict[str, list[str]] = {}
    findings = []
    for finding in result.findings:
        findings.append({
            "field": finding.field,
            "severity": finding.severity,
            "code": finding.code,
            "rule": finding.rule,
            "message": finding.message,
        })
        by_field.setdefault(finding.field, []).append(finding.message)

    return {
        "bucket": bucket_name,
        "passed": result.passed,
        "errorCount": result.error_count,
        "warningCount": result.warning_count,
        "findings": findings,
        "byField": by_field,
    }


def render_json(report: dict[str, Any]) -> str:
    """Render a report as JSON; identical reports render to identical bytes."""
    return json.dumps(report, indent=2, ensure_ascii=False)


def render_text(report: dict[str, Any]) -> str:
    """Render a report as one line per finding plus a summary line."""
    lines = []
    for finding in report["findings"]:
        lines.append(
            f"{finding['severity'].upper():<7} {finding['field']}: {finding['message']} "
            f"[{finding['rule']}/{finding['code']}]"
        )
    status = "PASS" if report["passed"] else "FAIL"
    bucket = report.get("bucket") or "bucket"
    lines.append(
        f"{status} {bucket}: {report['errorCount']} error(s), {report['warningCount']} warning(s)"
    )
    return "\n".join(lines)
