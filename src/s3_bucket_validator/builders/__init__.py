"""Builders for bucket configurations."""

from .bucket import create_bucket_config_from_spec, load_spec_file, parse_policy_statements, unwrap_manifest

__all__ = [
    "create_bucket_config_from_spec",
    "load_spec_file",
    "parse_policy_statements",
    "unwrap_manifest",
]
