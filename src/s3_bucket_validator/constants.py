"""Constants for the S3 Bucket Validator."""

# API Group (Bucket custom resources validated by the admission handler)
API_GROUP = "s3.cloud37.dev"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"
PLURAL_BUCKETS = "buckets"
KIND_BUCKET = "Bucket"

# Component name used in structured logs
COMPONENT = "s3-bucket-validator"

# Severities
SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

# Canned ACLs
ACL_PRIVATE = "private"
ACL_PUBLIC_READ = "public-read"
ACL_PUBLIC_READ_WRITE = "public-read-write"
ACL_AUTHENTICATED_READ = "authenticated-read"
ACL_AWS_EXEC_READ = "aws-exec-read"
ACL_LOG_DELIVERY_WRITE = "log-delivery-write"
ACL_NONE = "none"

CANNED_ACLS = frozenset({
    ACL_PRIVATE,
    ACL_PUBLIC_READ,
    ACL_PUBLIC_READ_WRITE,
    ACL_AUTHENTICATED_READ,
    ACL_AWS_EXEC_READ,
    ACL_LOG_DELIVERY_WRITE,
    ACL_NONE,
})

PUBLIC_ACLS = frozenset({ACL_PUBLIC_READ, ACL_PUBLIC_READ_WRITE, ACL_AUTHENTICATED_READ})
PUBLIC_READ_ACLS = frozenset({ACL_PUBLIC_READ, ACL_PUBLIC_READ_WRITE})

# Object ownership
OWNERSHIP_BUCKET_OWNER_ENFORCED = "BucketOwnerEnforced"
OWNERSHIP_BUCKET_OWNER_PREFERRED = "BucketOwnerPreferred"
OWNERSHIP_OBJECT_WRITER = "ObjectWriter"

OBJECT_OWNERSHIPS = frozenset({
    OWNERSHIP_BUCKET_OWNER_ENFORCED,
    OWNERSHIP_BUCKET_OWNER_PREFERRED,
    OWNERSHIP_OBJECT_WRITER,
})

# Policy statement effects
EFFECT_ALLOW = "Allow"
EFFECT_DENY = "Deny"
POLICY_EFFECTS = frozenset({EFFECT_ALLOW, EFFECT_DENY})

PRINCIPAL_ANY = "*"

# Condition keys, stored lowercased since IAM matches them case-insensitively
COND_SECURE_TRANSPORT = "aws:securetransport"
RESTRICTING_CONDITION_KEYS = frozenset({
    COND_SECURE_TRANSPORT,
    "aws:sourceip",
    "aws:sourcevpc",
    "aws:sourcevpce",
})

# Operators that narrow a statement to the listed values; negated forms
# (NotIpAddress, StringNotEquals, ...) widen it instead
RESTRICTING_OPERATORS = frozenset({
    "Bool",
    "IpAddress",
    "StringEquals",
    "StringEqualsIgnoreCase",
    "StringLike",
    "ArnEquals",
    "ArnLike",
})

# Default encryption algorithms
SSE_AES256 = "AES256"
SSE_KMS = "aws:kms"
SSE_KMS_DSSE = "aws:kms:dsse"
SSE_ALGORITHMS = frozenset({SSE_AES256, SSE_KMS, SSE_KMS_DSSE})
KMS_ALGORITHMS = frozenset({SSE_KMS, SSE_KMS_DSSE})

# Object Lock
LOCK_MODE_GOVERNANCE = "GOVERNANCE"
LOCK_MODE_COMPLIANCE = "COMPLIANCE"
OBJECT_LOCK_MODES = frozenset({LOCK_MODE_GOVERNANCE, LOCK_MODE_COMPLIANCE})

MAX_RETENTION_YEARS = 100
MAX_RETENTION_DAYS = 36500

# CORS methods that mutate objects
MUTATING_CORS_METHODS = frozenset({"PUT", "POST", "DELETE"})
CORS_ANY_ORIGIN = "*"

# ACL grantee groups
GROUP_ALL_USERS = "http://acs.amazonaws.com/groups/global/AllUsers"
GROUP_AUTHENTICATED_USERS = "http://acs.amazonaws.com/groups/global/AuthenticatedUsers"
GROUP_LOG_DELIVERY = "http://acs.amazonaws.com/groups/s3/LogDelivery"

# Finding codes
CODE_UNACKNOWLEDGED_PUBLIC_EXPOSURE = "UnacknowledgedPublicExposure"
CODE_PUBLIC_POLICY_BLOCKED = "PublicPolicyBlocked"
CODE_ACL_WITH_OWNER_ENFORCED = "AclWithOwnerEnforced"
CODE_OBJECT_LOCK_REQUIRES_VERSIONING = "ObjectLockRequiresVersioning"
CODE_OBJECT_LOCK_CREATION_ONLY = "ObjectLockCreationOnly"
CODE_ENCRYPTION_MISSING = "EncryptionMissing"
CODE_INSECURE_TRANSPORT_ALLOWED = "InsecureTransportAllowed"
CODE_RETENTION_NOT_POSITIVE = "RetentionNotPositive"
CODE_RETENTION_TOO_LONG = "RetentionTooLong"
CODE_CORS_WILDCARD_WRITE = "CorsWildcardWrite"
CODE_PUBLIC_ACL_BLOCKED = "PublicAclBlocked"
CODE_PUBLIC_ACL_IGNORED = "PublicAclIgnored"
CODE_KMS_KEY_UNSPECIFIED = "KmsKeyUnspecified"
CODE_KMS_KEY_WITH_AES256 = "KmsKeyWithAes256"
CODE_BUCKET_KEY_DISABLED = "BucketKeyDisabled"
CODE_WEBSITE_NOT_PUBLIC = "WebsiteNotPublic"
CODE_WEBSITE_INDEX_INVALID = "WebsiteIndexInvalid"

# Event reasons for structured logs
EVENT_REASON_VALIDATE_STARTED = "ValidateStarted"
EVENT_REASON_VALIDATE_SUCCEEDED = "ValidateSucceeded"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_MALFORMED_CONFIG = "MalformedConfig"
EVENT_REASON_EVALUATOR_FAILED = "EvaluatorFailed"
EVENT_REASON_BUCKET_READ = "BucketRead"
EVENT_REASON_ADMISSION_DENIED = "AdmissionDenied"
