"""Command line entry point for the S3 Bucket Validator.

Exit codes: 0 when the configuration has no errors (warnings never change the
exit code), 1 when it has errors or a change requires replacing the bucket,
2 on malformed input, unreadable files or AWS errors.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from . import metrics
from .builders.bucket import create_bucket_config_from_spec, load_spec_file
from .config import Settings, load_settings
from .constants import EVENT_REASON_MALFORMED_CONFIG
from .diff import diff_configs, requires_replacement
from .logging import log_validation_event, setup_structured_logging
from .models import BucketConfig
from .report import build_report, render_json, render_text
from .services.aws.client import AWSBucketReader
from .tracing import initialize_tracing, shutdown_tracing
from .utils.errors import MalformedConfig, sanitize_exception
from .validator import validate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INPUT_ERROR = 2


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="s3-bucket-validator",
        description="Flag conflicting or insecure settings in an S3 bucket configuration.",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help='Logging level (e.g. "DEBUG", "INFO"). You can also set S3_VALIDATOR_LOG_LEVEL.',
    )
    p.add_argument(
        "--metrics-file",
        default=None,
        help="Write Prometheus metrics to this textfile. You can also set S3_VALIDATOR_METRICS_FILE.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Validate a bucket document (JSON or YAML).")
    check.add_argument("file", help="Bucket document or Bucket manifest.")
    check.add_argument(
        "--existing",
        action="store_true",
        default=None,
        help="Treat the document as a change to an existing bucket.",
    )
    check.add_argument(
        "--allow-public",
        action="store_true",
        default=None,
        help="Acknowledge intentional public exposure.",
    )
    check.add_argument("--parallel", action="store_true", default=None, help="Run rules on a thread pool.")
    check.add_argument("--format", choices=["json", "text"], default="json", help="Output format (default: json).")

    inspect = sub.add_parser("inspect", help="Read a live bucket and validate it.")
    inspect.add_argument("bucket", help="Bucket name.")
    inspect.add_argument("--region", default=None, help="AWS region (default: AWS_REGION or us-east-1).")
    inspect.add_argument("--endpoint", default=None, help="Custom S3 endpoint URL.")
    inspect.add_argument("--path-style", action="store_true", help="Use path-style addressing.")
    inspect.add_argument("--format", choices=["json", "text"], default="json", help="Output format (default: json).")

    diff = sub.add_parser("diff", help="Compare two bucket documents.")
    diff.add_argument("current", help="Document describing the existing bucket.")
    diff.add_argument("desired", help="Document describing the desired bucket.")

    return p.parse_args(sys.argv[1:] if argv is None else argv)


def _emit(report: dict, output_format: str) -> None:
    if output_format == "text":
        print(render_text(report))
    else:
        print(render_json(report))


def _validate_and_emit(config: BucketConfig, settings: Settings, parallel: bool, output_format: str) -> int:
    result = validate(config, parallel=parallel, max_workers=settings.max_workers)
    _emit(build_report(result, bucket_name=config.name), output_format)
    return EXIT_OK if result.passed else EXIT_FAILED


def _run_check(args: argparse.Namespace, settings: Settings) -> int:
    config = create_bucket_config_from_spec(
        load_spec_file(args.file),
        is_existing_bucket=args.existing,
        allow_public_override=args.allow_public,
    )
    parallel = settings.parallel if args.parallel is None else args.parallel
    return _validate_and_emit(config, settings, parallel, args.format)


def _run_inspect(args: argparse.Namespace, settings: Settings) -> int:
    reader = AWSBucketReader(
        region=args.region or settings.region,
        endpoint=args.endpoint or settings.endpoint_url,
        path_style=args.path_style,
    )
    config = create_bucket_config_from_spec(reader.read_bucket_spec(args.bucket))
    return _validate_and_emit(config, settings, settings.parallel, args.format)


def _run_diff(args: argparse.Namespace, settings: Settings) -> int:
    current = create_bucket_config_from_spec(load_spec_file(args.current), is_existing_bucket=True)
    desired = create_bucket_config_from_spec(load_spec_file(args.desired), is_existing_bucket=True)
    changes = diff_configs(current, desired)
    replacement = requires_replacement(changes)
    print(json.dumps(
        {
            "changes": [change.to_dict() for change in changes],
            "requiresReplacement": replacement,
        },
        indent=2,
        default=str,
    ))
    return EXIT_FAILED if replacement else EXIT_OK


def _write_metrics(path: str) -> None:
    try:
        metrics.write_metrics(path)
    except OSError as e:
        logger.warning(f"Failed to write metrics to {path}: {sanitize_exception(e)}")


COMMANDS = {
    "check": _run_check,
    "inspect": _run_inspect,
    "diff": _run_diff,
}


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entrypoint."""
    args = _parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    setup_structured_logging(args.log_level or settings.log_level)
    initialize_tracing()

    try:
        return COMMANDS[args.command](args, settings)
    except MalformedConfig as e:
        metrics.malformed_configs_total.inc()
        log_validation_event(
            logger,
            getattr(args, "file", None) or getattr(args, "bucket", None) or "unknown",
            event="error",
            reason=EVENT_REASON_MALFORMED_CONFIG,
            message=str(e),
            level=logging.ERROR,
            field=e.field,
        )
        print(f"Error: malformed configuration: {sanitize_exception(e)}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except OSError as e:
        print(f"Error: {sanitize_exception(e)}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except (ClientError, BotoCoreError) as e:
        print(f"Error: AWS request failed: {sanitize_exception(e)}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    finally:
        metrics_file = args.metrics_file or settings.metrics_file
        if metrics_file:
            _write_metrics(metrics_file)
        shutdown_tracing()


if __name__ == "__main__":
    raise SystemExit(main())
