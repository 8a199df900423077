"""Builder for bucket configurations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from ..constants import KIND_BUCKET, OWNERSHIP_BUCKET_OWNER_ENFORCED, PRINCIPAL_ANY, SSE_AES256
from ..models import (
    BucketConfig,
    CorsRule,
    EncryptionRule,
    ObjectLockRule,
    PolicyStatement,
    PublicAccessBlock,
    WebsiteConfig,
)
from ..utils.errors import MalformedConfig


def _get_section(spec: dict[str, Any], key: str) -> dict[str, Any]:
    section = spec.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise MalformedConfig(f"must be a mapping, got {type(section).__name__}", field=key)
    return section


def _get_bool(section: dict[str, Any], key: str, path: str, default: bool) -> bool:
    value = section.get(key, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise MalformedConfig(f"must be a boolean, got {value!r}", field=path)
    return value


def _get_int(section: dict[str, Any], key: str, path: str) -> int | None:
    value = section.get(key)
    if value is None:
        return None
    # bool is an int subclass and is never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedConfig(f"must be an integer, got {value!r}", field=path)
    return value


def _get_str(section: dict[str, Any], key: str, path: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedConfig(f"must be a string, got {value!r}", field=path)
    return value


def _as_str_list(value: Any, path: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise MalformedConfig(f"must be a string or a list of strings, got {value!r}", field=path)


def _first_key(data: dict[str, Any], *keys: str) -> Any:
    """Return the value of the first present key (CRD lowercase or AWS PascalCase)."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _normalize_condition_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return tuple(_normalize_condition_value(v) for v in value)
    return str(value)


def _flatten_principals(principal: Any, path: str) -> list[str]:
    """Flatten the principal forms a policy may use into plain strings.

    ``"*"``, ``{"AWS": "*"}``, ``{"AWS": [arn, ...]}``, ``{"Service": ...}`` and
    plain lists are all accepted.
    """
    if principal is None:
        raise MalformedConfig("principal is required", field=path)
    if isinstance(principal, str):
        return [principal]
    if isinstance(principal, list):
        flattened: list[str] = []
        for item in principal:
            flattened.extend(_flatten_principals(item, path))
        return flattened
    if isinstance(principal, dict):
        flattened = []
        for key in sorted(principal):
            flattened.extend(_as_str_list(principal[key], f"{path}.{key}"))
        if not flattened:
            raise MalformedConfig("principal must not be empty", field=path)
        return flattened
    raise MalformedConfig(f"unsupported principal {principal!r}", field=path)


def parse_policy_statements(policy: Any) -> tuple[PolicyStatement, ...]:
    """Convert a policy document into statements with one principal each.

    Accepts the CRD format (lowercase keys), the AWS format (PascalCase keys)
    or a JSON string of either. A statement naming several principals is split
    into one statement per principal, keeping the original order.
    """
    if policy is None:
        return ()
    if isinstance(policy, str):
        try:
            policy = json.loads(policy)
        except json.JSONDecodeError as e:
            raise MalformedConfig(f"policy is not valid JSON: {e}", field="policy") from e
    if not isinstance(policy, dict):
        raise MalformedConfig("policy must be a mapping", field="policy")

    raw_statements = _first_key(policy, "statement", "Statement")
    if raw_statements is None:
        return ()
    if isinstance(raw_statements, dict):
        raw_statements = [raw_statements]
    if not isinstance(raw_statements, list):
        raise MalformedConfig("statement must be a list", field="policy.statement")

    statements: list[PolicyStatement] = []
    for idx, stmt in enumerate(raw_statements):
        path = f"policy.statement[{idx}]"
        if not isinstance(stmt, dict):
            raise MalformedConfig("statement must be a mapping", field=path)

        effect = _first_key(stmt, "effect", "Effect")
        actions = _as_str_list(_first_key(stmt, "action", "Action"), f"{path}.action")
        resources = _as_str_list(_first_key(stmt, "resource", "Resource"), f"{path}.resource")
        sid = _first_key(stmt, "sid", "Sid")

        conditions: dict[str, Any] = {}
        operators: dict[str, str] = {}
        raw_condition = _first_key(stmt, "condition", "Condition") or {}
        if not isinstance(raw_condition, dict):
            raise MalformedConfig("condition must be a mapping", field=f"{path}.condition")
        for operator, entries in raw_condition.items():
            if not isinstance(entries, dict):
                raise MalformedConfig(
                    f"condition operator {operator} must map keys to values",
                    field=f"{path}.condition",
                )
            for key, value in entries.items():
                conditions[key] = _normalize_condition_value(value)
                operators[key] = operator

        for principal in _flatten_principals(_first_key(stmt, "principal", "Principal"), f"{path}.principal"):
            try:
                statements.append(
                    PolicyStatement(
                        effect=effect,
                        principal=principal,
                        actions=frozenset(actions),
                        resource_pattern=",".join(resources) if resources else "*",
                        conditions=conditions,
                        condition_operators=operators,
                        sid=sid,
                        statement_index=idx,
                    )
                )
            except MalformedConfig as e:
                raise MalformedConfig(e.message, field=path) from e

    return tuple(statements)


def _build_object_lock(spec: dict[str, Any]) -> ObjectLockRule | None:
    lock = _get_section(spec, "objectLock")
    if not lock:
        return None

    retention = _get_section(lock, "retention")
    days = _get_int(retention, "days", "objectLock.retention.days")
    years = _get_int(retention, "years", "objectLock.retention.years")
    if days is None:
        days = _get_int(lock, "retentionDays", "objectLock.retentionDays")
    if years is None:
        years = _get_int(lock, "retentionYears", "objectLock.retentionYears")

    mode = _get_str(retention, "mode", "objectLock.retention.mode") or _get_str(lock, "mode", "objectLock.mode")

    return ObjectLockRule(
        enabled=_get_bool(lock, "enabled", "objectLock.enabled", True),
        mode=mode or "GOVERNANCE",
        retention_days=days,
        retention_years=years,
    )


def _build_encryption(spec: dict[str, Any]) -> EncryptionRule | None:
    encryption = _get_section(spec, "encryption")
    if not encryption:
        return None
    if not _get_bool(encryption, "enabled", "encryption.enabled", True):
        return None

    kms_key = _get_str(encryption, "kmsKeyArn", "encryption.kmsKeyArn") or _get_str(
        encryption, "kmsKeyId", "encryption.kmsKeyId"
    )
    return EncryptionRule(
        algorithm=_get_str(encryption, "algorithm", "encryption.algorithm") or SSE_AES256,
        kms_key_arn=kms_key,
        bucket_key_enabled=_get_bool(encryption, "bucketKeyEnabled", "encryption.bucketKeyEnabled", False),
    )


def _build_website(spec: dict[str, Any]) -> WebsiteConfig | None:
    website = _get_section(spec, "website")
    if not website:
        return None
    index_document = _get_str(website, "indexDocument", "website.indexDocument")
    if index_document is None:
        raise MalformedConfig("indexDocument is required", field="website.indexDocument")
    return WebsiteConfig(
        index_document=index_document,
        error_document=_get_str(website, "errorDocument", "website.errorDocument"),
    )


def _build_cors(spec: dict[str, Any]) -> tuple[CorsRule, ...]:
    cors = spec.get("cors")
    if cors is None:
        return ()
    # Both {"rules": [...]} and a bare list of rules are accepted
    rules = cors.get("rules", []) if isinstance(cors, dict) else cors
    if not isinstance(rules, list):
        raise MalformedConfig("rules must be a list", field="cors.rules")

    built = []
    for idx, rule in enumerate(rules):
        path = f"cors.rules[{idx}]"
        if not isinstance(rule, dict):
            raise MalformedConfig("rule must be a mapping", field=path)
        built.append(
            CorsRule(
                allowed_methods=frozenset(_as_str_list(rule.get("allowedMethods"), f"{path}.allowedMethods")),
                allowed_origins=frozenset(_as_str_list(rule.get("allowedOrigins"), f"{path}.allowedOrigins")),
                allowed_headers=frozenset(_as_str_list(rule.get("allowedHeaders"), f"{path}.allowedHeaders")),
                expose_headers=frozenset(_as_str_list(rule.get("exposeHeaders"), f"{path}.exposeHeaders")),
                max_age_seconds=_get_int(rule, "maxAgeSeconds", f"{path}.maxAgeSeconds"),
            )
        )
    return tuple(built)


def create_bucket_config_from_spec(
    spec: dict[str, Any],
    is_existing_bucket: bool | None = None,
    allow_public_override: bool | None = None,
) -> BucketConfig:
    """Create a bucket configuration from a bucket document.

    Args:
        spec: Bucket document (camelCase keys, same shape as the Bucket CRD spec)
        is_existing_bucket: Overrides ``isExistingBucket`` from the document
        allow_public_override: Overrides ``allowPublicOverride`` from the document

    Returns:
        Immutable bucket configuration

    Raises:
        MalformedConfig: If the document is contradictory or has invalid values
    """
    if not isinstance(spec, dict):
        raise MalformedConfig("bucket document must be a mapping")

    pab = _get_section(spec, "publicAccessBlock")
    public_access_block = PublicAccessBlock(
        block_public_acls=_get_bool(pab, "blockPublicAcls", "publicAccessBlock.blockPublicAcls", True),
        ignore_public_acls=_get_bool(pab, "ignorePublicAcls", "publicAccessBlock.ignorePublicAcls", True),
        block_public_policy=_get_bool(pab, "blockPublicPolicy", "publicAccessBlock.blockPublicPolicy", True),
        restrict_public_buckets=_get_bool(
            pab, "restrictPublicBuckets", "publicAccessBlock.restrictPublicBuckets", True
        ),
    )

    versioning = _get_section(spec, "versioning")

    if is_existing_bucket is None:
        is_existing_bucket = _get_bool(spec, "isExistingBucket", "isExistingBucket", False)
    if allow_public_override is None:
        allow_public_override = _get_bool(spec, "allowPublicOverride", "allowPublicOverride", False)

    return BucketConfig(
        name=spec.get("name", ""),
        public_access_block=public_access_block,
        acl=_get_str(spec, "acl", "acl"),
        object_ownership=_get_str(spec, "objectOwnership", "objectOwnership") or OWNERSHIP_BUCKET_OWNER_ENFORCED,
        policy_statements=parse_policy_statements(spec.get("policy")),
        encryption=_build_encryption(spec),
        versioning_enabled=_get_bool(versioning, "enabled", "versioning.enabled", False),
        object_lock=_build_object_lock(spec),
        website=_build_website(spec),
        cors=_build_cors(spec),
        allow_public_override=allow_public_override,
        is_existing_bucket=is_existing_bucket,
    )


def unwrap_manifest(document: Any) -> dict[str, Any]:
    """Return the bucket document, unwrapping a Kubernetes Bucket manifest.

    The bucket name falls back to ``metadata.name`` when the spec has none.
    """
    if not isinstance(document, dict):
        raise MalformedConfig("bucket document must be a mapping")
    if document.get("kind") != KIND_BUCKET or "spec" not in document:
        return document

    spec = dict(document.get("spec") or {})
    if not spec.get("name"):
        spec["name"] = (document.get("metadata") or {}).get("name", "")
    return spec


def load_spec_file(path: str | Path) -> dict[str, Any]:
    """Load a bucket document from a JSON or YAML file.

    Raises:
        OSError: If the file cannot be read
        MalformedConfig: If the file is not a valid bucket document
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise MalformedConfig(f"cannot parse {path.name}: {e}") from e
    return unwrap_manifest(document)
