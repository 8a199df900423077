"""Rule evaluators for bucket configurations.

Every evaluator is a pure function ``(BucketConfig) -> list[Finding]`` and is
registered with :func:`rule`. Registration order is the order findings are
reported in.
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Callable

from .constants import (
    CODE_ACL_WITH_OWNER_ENFORCED,
    CODE_BUCKET_KEY_DISABLED,
    CODE_CORS_WILDCARD_WRITE,
    CODE_ENCRYPTION_MISSING,
    CODE_INSECURE_TRANSPORT_ALLOWED,
    CODE_KMS_KEY_UNSPECIFIED,
    CODE_KMS_KEY_WITH_AES256,
    CODE_OBJECT_LOCK_CREATION_ONLY,
    CODE_OBJECT_LOCK_REQUIRES_VERSIONING,
    CODE_PUBLIC_ACL_BLOCKED,
    CODE_PUBLIC_ACL_IGNORED,
    CODE_PUBLIC_POLICY_BLOCKED,
    CODE_RETENTION_NOT_POSITIVE,
    CODE_RETENTION_TOO_LONG,
    CODE_UNACKNOWLEDGED_PUBLIC_EXPOSURE,
    CODE_WEBSITE_INDEX_INVALID,
    CODE_WEBSITE_NOT_PUBLIC,
    COND_SECURE_TRANSPORT,
    CORS_ANY_ORIGIN,
    EFFECT_ALLOW,
    EFFECT_DENY,
    KMS_ALGORITHMS,
    LOCK_MODE_COMPLIANCE,
    MAX_RETENTION_DAYS,
    MAX_RETENTION_YEARS,
    MUTATING_CORS_METHODS,
    OWNERSHIP_BUCKET_OWNER_ENFORCED,
    PRINCIPAL_ANY,
    PUBLIC_ACLS,
    PUBLIC_READ_ACLS,
    RESTRICTING_CONDITION_KEYS,
    RESTRICTING_OPERATORS,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    SSE_AES256,
)
from .models import BucketConfig, Finding, PolicyStatement

EvaluatorFunc = Callable[[BucketConfig], list[Finding]]


@dataclass(frozen=True)
class Evaluator:
    """A registered rule evaluator."""

    name: str
    func: EvaluatorFunc

    def __call__(self, config: BucketConfig) -> list[Finding]:
        return self.func(config)


# Global registry, in declaration order
EVALUATORS: list[Evaluator] = []


def rule(name: str) -> Callable[[EvaluatorFunc], EvaluatorFunc]:
    """Register a function as a rule evaluator under ``name``."""

    def decorator(func: EvaluatorFunc) -> EvaluatorFunc:
        EVALUATORS.append(Evaluator(name, func))
        return func

    return decorator


def _matches_any(value: str, candidates: set[str] | frozenset[str]) -> bool:
    return any(fnmatchcase(value.lower(), candidate.lower()) for candidate in candidates)


def _condition_equals(stmt: PolicyStatement, key: str, expected: str) -> bool:
    value = stmt.conditions.get(key)
    values = value if isinstance(value, tuple) else (value,)
    return any(isinstance(v, str) and v.lower() == expected for v in values)


def _base_operator(operator: str) -> str:
    """Strip set qualifiers and the IfExists suffix from a condition operator."""
    operator = operator.split(":")[-1]
    if operator.endswith("IfExists"):
        operator = operator[: -len("IfExists")]
    return operator


def is_public_statement(stmt: PolicyStatement) -> bool:
    """Whether a statement grants access to anyone."""
    return stmt.effect == EFFECT_ALLOW and stmt.principal == PRINCIPAL_ANY


def is_restricted(stmt: PolicyStatement) -> bool:
    """Whether a transport or network condition narrows a statement."""
    for key in RESTRICTING_CONDITION_KEYS:
        if key not in stmt.conditions:
            continue
        if _base_operator(stmt.condition_operators.get(key, "")) not in RESTRICTING_OPERATORS:
            continue
        if key != COND_SECURE_TRANSPORT or _condition_equals(stmt, key, "true"):
            return True
    return False


def denies_insecure_transport(stmt: PolicyStatement) -> bool:
    return (
        stmt.effect == EFFECT_DENY
        and _base_operator(stmt.condition_operators.get(COND_SECURE_TRANSPORT, "")) == "Bool"
        and _condition_equals(stmt, COND_SECURE_TRANSPORT, "false")
    )


def _statement_field(stmt: PolicyStatement, idx: int) -> str:
    if stmt.statement_index is not None:
        idx = stmt.statement_index
    return f"policy.statement[{idx}]"


@rule("PublicAccessConsistency")
def check_public_access_consistency(config: BucketConfig) -> list[Finding]:
    findings = []
    for idx, stmt in enumerate(config.policy_statements):
        if not is_public_statement(stmt) or is_restricted(stmt):
            continue
        if config.public_access_block.block_public_policy:
            findings.append(Finding(
                rule="PublicAccessConsistency",
                code=CODE_PUBLIC_POLICY_BLOCKED,
                severity=SEVERITY_ERROR,
                message="public policy statement conflicts with blockPublicPolicy; the policy will be rejected",
                field=_statement_field(stmt, idx),
            ))
        elif not config.allow_public_override:
            findings.append(Finding(
                rule="PublicAccessConsistency",
                code=CODE_UNACKNOWLEDGED_PUBLIC_EXPOSURE,
                severity=SEVERITY_WARNING,
                message="unacknowledged public exposure: statement allows principal '*' without a restricting condition",
                field=_statement_field(stmt, idx),
            ))
    return findings


@rule("AclLegality")
def check_acl_legality(config: BucketConfig) -> list[Finding]:
    if config.object_ownership != OWNERSHIP_BUCKET_OWNER_ENFORCED or config.acls_disabled:
        return []
    return [Finding(
        rule="AclLegality",
        code=CODE_ACL_WITH_OWNER_ENFORCED,
        severity=SEVERITY_ERROR,
        message=f"acl '{config.acl}' is not allowed when objectOwnership is BucketOwnerEnforced (ACLs disabled)",
        field="acl",
    )]


@rule("ObjectLockPrerequisites")
def check_object_lock_prerequisites(config: BucketConfig) -> list[Finding]:
    lock = config.object_lock
    if lock is None or not lock.enabled:
        return []

    findings = []
    if not config.versioning_enabled:
        findings.append(Finding(
            rule="ObjectLockPrerequisites",
            code=CODE_OBJECT_LOCK_REQUIRES_VERSIONING,
            severity=SEVERITY_ERROR,
            message="object lock requires versioning to be enabled",
            field="versioning.enabled",
        ))
    if lock.mode == LOCK_MODE_COMPLIANCE and config.is_existing_bucket:
        findings.append(Finding(
            rule="ObjectLockPrerequisites",
            code=CODE_OBJECT_LOCK_CREATION_ONLY,
            severity=SEVERITY_ERROR,
            message="object lock in COMPLIANCE mode can only be enabled when the bucket is created",
            field="objectLock.enabled",
        ))
    return findings


@rule("EncryptionPresence")
def check_encryption_presence(config: BucketConfig) -> list[Finding]:
    if config.encryption is not None:
        return []
    return [Finding(
        rule="EncryptionPresence",
        code=CODE_ENCRYPTION_MISSING,
        severity=SEVERITY_WARNING,
        message="no default encryption configured",
        field="encryption",
    )]


@rule("TransportEnforcement")
def check_transport_enforcement(config: BucketConfig) -> list[Finding]:
    if any(denies_insecure_transport(stmt) for stmt in config.policy_statements):
        return []
    return [Finding(
        rule="TransportEnforcement",
        code=CODE_INSECURE_TRANSPORT_ALLOWED,
        severity=SEVERITY_WARNING,
        message="no policy statement denies requests where aws:SecureTransport is false",
        field="policy",
    )]


@rule("RetentionSanity")
def check_retention_sanity(config: BucketConfig) -> list[Finding]:
    lock = config.object_lock
    if lock is None:
        return []

    findings = []
    for value, unit, limit, field in (
        (lock.retention_days, "days", MAX_RETENTION_DAYS, "objectLock.retention.days"),
        (lock.retention_years, "years", MAX_RETENTION_YEARS, "objectLock.retention.years"),
    ):
        if value is None:
            continue
        if value <= 0:
            findings.append(Finding(
                rule="RetentionSanity",
                code=CODE_RETENTION_NOT_POSITIVE,
                severity=SEVERITY_ERROR,
                message=f"retention of {value} {unit} must be positive",
                field=field,
            ))
        elif value > limit:
            findings.append(Finding(
                rule="RetentionSanity",
                code=CODE_RETENTION_TOO_LONG,
                severity=SEVERITY_ERROR,
                message=f"retention of {value} {unit} exceeds the maximum of {limit} {unit}",
                field=field,
            ))
    return findings


@rule("CorsOriginBreadth")
def check_cors_origin_breadth(config: BucketConfig) -> list[Finding]:
    findings = []
    for idx, cors_rule in enumerate(config.cors):
        mutating = sorted(cors_rule.allowed_methods & MUTATING_CORS_METHODS)
        if CORS_ANY_ORIGIN in cors_rule.allowed_origins and mutating:
            findings.append(Finding(
                rule="CorsOriginBreadth",
                code=CODE_CORS_WILDCARD_WRITE,
                severity=SEVERITY_WARNING,
                message=f"wildcard origin allowed together with mutating methods {', '.join(mutating)}",
                field=f"cors.rules[{idx}]",
            ))
    return findings


@rule("PublicAclBlocked")
def check_public_acl_blocked(config: BucketConfig) -> list[Finding]:
    if config.acl not in PUBLIC_ACLS:
        return []
    pab = config.public_access_block
    if pab.block_public_acls:
        return [Finding(
            rule="PublicAclBlocked",
            code=CODE_PUBLIC_ACL_BLOCKED,
            severity=SEVERITY_ERROR,
            message=f"acl '{config.acl}' is public and blockPublicAcls rejects it",
            field="acl",
        )]
    if pab.ignore_public_acls:
        return [Finding(
            rule="PublicAclBlocked",
            code=CODE_PUBLIC_ACL_IGNORED,
            severity=SEVERITY_WARNING,
            message=f"acl '{config.acl}' has no effect while ignorePublicAcls is enabled",
            field="acl",
        )]
    return []


@rule("KmsKeyConfiguration")
def check_kms_key_configuration(config: BucketConfig) -> list[Finding]:
    encryption = config.encryption
    if encryption is None:
        return []

    if encryption.algorithm == SSE_AES256:
        if encryption.kms_key_arn:
            return [Finding(
                rule="KmsKeyConfiguration",
                code=CODE_KMS_KEY_WITH_AES256,
                severity=SEVERITY_ERROR,
                message="a KMS key can only be set with aws:kms or aws:kms:dsse encryption",
                field="encryption.kmsKeyArn",
            )]
        return []

    findings = []
    if encryption.algorithm in KMS_ALGORITHMS and not encryption.kms_key_arn:
        findings.append(Finding(
            rule="KmsKeyConfiguration",
            code=CODE_KMS_KEY_UNSPECIFIED,
            severity=SEVERITY_WARNING,
            message="no KMS key specified; the AWS managed key aws/s3 will be used",
            field="encryption.kmsKeyArn",
        ))
    if not encryption.bucket_key_enabled:
        findings.append(Finding(
            rule="KmsKeyConfiguration",
            code=CODE_BUCKET_KEY_DISABLED,
            severity=SEVERITY_WARNING,
            message="S3 Bucket Key is disabled; every object operation calls KMS",
            field="encryption.bucketKeyEnabled",
        ))
    return findings


def _is_publicly_readable(config: BucketConfig) -> bool:
    pab = config.public_access_block
    policy_read = any(
        is_public_statement(stmt) and _matches_any("s3:GetObject", stmt.actions)
        for stmt in config.policy_statements
    )
    if policy_read and not pab.block_public_policy and not pab.restrict_public_buckets:
        return True
    return (
        config.acl in PUBLIC_READ_ACLS
        and config.object_ownership != OWNERSHIP_BUCKET_OWNER_ENFORCED
        and not pab.block_public_acls
        and not pab.ignore_public_acls
    )


@rule("WebsiteReachability")
def check_website_reachability(config: BucketConfig) -> list[Finding]:
    website = config.website
    if website is None:
        return []

    findings = []
    if not website.index_document or "/" in website.index_document:
        findings.append(Finding(
            rule="WebsiteReachability",
            code=CODE_WEBSITE_INDEX_INVALID,
            severity=SEVERITY_ERROR,
            message="indexDocument must be a non-empty suffix without '/'",
            field="website.indexDocument",
        ))
    if not _is_publicly_readable(config):
        findings.append(Finding(
            rule="WebsiteReachability",
            code=CODE_WEBSITE_NOT_PUBLIC,
            severity=SEVERITY_WARNING,
            message="website hosting is configured but objects are not publicly readable; the endpoint will return 403",
            field="website",
        ))
    return findings
