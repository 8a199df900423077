"""Models for bucket configuration validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .constants import (
    ACL_NONE,
    CANNED_ACLS,
    LOCK_MODE_GOVERNANCE,
    OBJECT_LOCK_MODES,
    OBJECT_OWNERSHIPS,
    OWNERSHIP_BUCKET_OWNER_ENFORCED,
    POLICY_EFFECTS,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    SSE_AES256,
    SSE_ALGORITHMS,
)
from .utils.errors import MalformedConfig


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _require_bool(value: Any, field_path: str) -> None:
    if not isinstance(value, bool):
        raise MalformedConfig(f"must be a boolean, got {value!r}", field=field_path)


def _require_int(value: Any, field_path: str) -> None:
    # bool is an int subclass but never a retention period
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise MalformedConfig(f"must be an integer, got {value!r}", field=field_path)


@dataclass(frozen=True)
class PublicAccessBlock:
    """Bucket-level public access block flags."""

    block_public_acls: bool = True
    ignore_public_acls: bool = True
    block_public_policy: bool = True
    restrict_public_buckets: bool = True

    def __post_init__(self) -> None:
        for name in ("block_public_acls", "ignore_public_acls", "block_public_policy", "restrict_public_buckets"):
            _require_bool(getattr(self, name), f"publicAccessBlock.{_camel(name)}")


@dataclass(frozen=True)
class PolicyStatement:
    """A single bucket policy statement with one principal."""

    effect: str
    principal: str
    actions: frozenset[str] = frozenset()
    resource_pattern: str = "*"
    conditions: Mapping[str, Any] = field(default_factory=dict)
    condition_operators: Mapping[str, str] = field(default_factory=dict)
    sid: str | None = None
    statement_index: int | None = None

    def __post_init__(self) -> None:
        if self.effect not in POLICY_EFFECTS:
            raise MalformedConfig(
                f"effect must be one of {sorted(POLICY_EFFECTS)}, got {self.effect!r}",
                field="policy.statement.effect",
            )
        if not self.principal:
            raise MalformedConfig("principal is required", field="policy.statement.principal")
        object.__setattr__(self, "actions", frozenset(self.actions))
        # Condition keys are case-insensitive
        conditions = {key.lower(): value for key, value in self.conditions.items()}
        operators = {key.lower(): op for key, op in self.condition_operators.items()}
        object.__setattr__(self, "conditions", MappingProxyType(conditions))
        object.__setattr__(self, "condition_operators", MappingProxyType(operators))


@dataclass(frozen=True)
class EncryptionRule:
    """Default server-side encryption rule."""

    algorithm: str = SSE_AES256
    kms_key_arn: str | None = None
    bucket_key_enabled: bool = False

    def __post_init__(self) -> None:
        if self.algorithm not in SSE_ALGORITHMS:
            raise MalformedConfig(
                f"algorithm must be one of {sorted(SSE_ALGORITHMS)}, got {self.algorithm!r}",
                field="encryption.algorithm",
            )
        _require_bool(self.bucket_key_enabled, "encryption.bucketKeyEnabled")


@dataclass(frozen=True)
class ObjectLockRule:
    """Object Lock configuration with an optional default retention."""

    enabled: bool = True
    mode: str = LOCK_MODE_GOVERNANCE
    retention_days: int | None = None
    retention_years: int | None = None

    def __post_init__(self) -> None:
        _require_bool(self.enabled, "objectLock.enabled")
        _require_int(self.retention_days, "objectLock.retention.days")
        _require_int(self.retention_years, "objectLock.retention.years")
        mode = self.mode.upper() if isinstance(self.mode, str) else self.mode
        if mode not in OBJECT_LOCK_MODES:
            raise MalformedConfig(
                f"mode must be one of {sorted(OBJECT_LOCK_MODES)}, got {self.mode!r}",
                field="objectLock.mode",
            )
        object.__setattr__(self, "mode", mode)
        if self.retention_days is not None and self.retention_years is not None:
            raise MalformedConfig(
                "only one of days or years may be set",
                field="objectLock.retention",
            )


@dataclass(frozen=True)
class WebsiteConfig:
    """Static website hosting configuration."""

    index_document: str
    error_document: str | None = None


@dataclass(frozen=True)
class CorsRule:
    """A single CORS rule."""

    allowed_methods: frozenset[str] = frozenset()
    allowed_origins: frozenset[str] = frozenset()
    allowed_headers: frozenset[str] = frozenset()
    expose_headers: frozenset[str] = frozenset()
    max_age_seconds: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_methods", frozenset(m.upper() for m in self.allowed_methods))
        object.__setattr__(self, "allowed_origins", frozenset(self.allowed_origins))
        object.__setattr__(self, "allowed_headers", frozenset(self.allowed_headers))
        object.__setattr__(self, "expose_headers", frozenset(self.expose_headers))


@dataclass(frozen=True)
class BucketConfig:
    """Intended configuration of a single bucket.

    Constructed once per validation run and never mutated. ``acl`` of ``None``
    and ``"none"`` both mean ACLs are absent.
    """

    name: str
    public_access_block: PublicAccessBlock = field(default_factory=PublicAccessBlock)
    acl: str | None = None
    object_ownership: str = OWNERSHIP_BUCKET_OWNER_ENFORCED
    policy_statements: tuple[PolicyStatement, ...] = ()
    encryption: EncryptionRule | None = None
    versioning_enabled: bool = False
    object_lock: ObjectLockRule | None = None
    website: WebsiteConfig | None = None
    cors: tuple[CorsRule, ...] = ()
    allow_public_override: bool = False
    is_existing_bucket: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise MalformedConfig("bucket name must not be empty", field="name")
        if self.acl is not None and self.acl not in CANNED_ACLS:
            raise MalformedConfig(
                f"acl must be one of {sorted(CANNED_ACLS)}, got {self.acl!r}",
                field="acl",
            )
        if self.object_ownership not in OBJECT_OWNERSHIPS:
            raise MalformedConfig(
                f"objectOwnership must be one of {sorted(OBJECT_OWNERSHIPS)}, got {self.object_ownership!r}",
                field="objectOwnership",
            )
        _require_bool(self.versioning_enabled, "versioning.enabled")
        _require_bool(self.allow_public_override, "allowPublicOverride")
        _require_bool(self.is_existing_bucket, "isExistingBucket")
        if not isinstance(self.public_access_block, PublicAccessBlock):
            raise MalformedConfig("must be a PublicAccessBlock", field="publicAccessBlock")
        object.__setattr__(self, "policy_statements", tuple(self.policy_statements))
        object.__setattr__(self, "cors", tuple(self.cors))

    @property
    def acls_disabled(self) -> bool:
        """Whether no canned ACL is requested."""
        return self.acl is None or self.acl == ACL_NONE


@dataclass(frozen=True)
class Finding:
    """A single validation result tied to a configuration field."""

    rule: str
    code: str
    severity: str
    message: str
    field: str

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == SEVERITY_WARNING


@dataclass(frozen=True)
class ValidationResult:
    """Ordered findings of one validation run with severity counts."""

    findings: tuple[Finding, ...] = ()
    error_count: int = 0
    warning_count: int = 0

    @classmethod
    def from_findings(cls, findings: list[Finding] | tuple[Finding, ...]) -> ValidationResult:
        findings = tuple(findings)
        return cls(
            findings=findings,
            error_count=sum(1 for f in findings if f.is_error),
            warning_count=sum(1 for f in findings if f.is_warning),
        )

    @property
    def passed(self) -> bool:
        return self.error_count == 0
