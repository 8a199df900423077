"""Read-only AWS S3 client that collects a live bucket's configuration."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ... import metrics
from ...constants import (
    ACL_AUTHENTICATED_READ,
    ACL_LOG_DELIVERY_WRITE,
    ACL_NONE,
    ACL_PRIVATE,
    ACL_PUBLIC_READ,
    ACL_PUBLIC_READ_WRITE,
    EVENT_REASON_BUCKET_READ,
    GROUP_ALL_USERS,
    GROUP_AUTHENTICATED_USERS,
    GROUP_LOG_DELIVERY,
    OWNERSHIP_BUCKET_OWNER_ENFORCED,
)
from ...logging import log_validation_event
from ...tracing import trace_span

logger = logging.getLogger(__name__)

# Error codes AWS returns when a bucket simply has no such configuration
MISSING_CONFIGURATION_CODES = {
    "NoSuchBucketPolicy",
    "NoSuchPublicAccessBlockConfiguration",
    "ServerSideEncryptionConfigurationNotFoundError",
    "ObjectLockConfigurationNotFoundError",
    "NoSuchWebsiteConfiguration",
    "NoSuchCORSConfiguration",
    "OwnershipControlsNotFoundError",
}


def canned_acl_from_grants(grants: list[dict[str, Any]], object_ownership: str | None) -> str:
    """Map ACL grants back onto the canned ACL that produces them.

    Grants that match no canned ACL beyond the owner's are reported as ``private``.
    """
    if object_ownership == OWNERSHIP_BUCKET_OWNER_ENFORCED:
        return ACL_NONE

    group_permissions: dict[str, set[str]] = {}
    for grant in grants:
        grantee = grant.get("Grantee", {})
        if grantee.get("Type") != "Group":
            continue
        group_permissions.setdefault(grantee.get("URI", ""), set()).add(grant.get("Permission", ""))

    everyone = group_permissions.get(GROUP_ALL_USERS, set())
    if "WRITE" in everyone or "FULL_CONTROL" in everyone:
        return ACL_PUBLIC_READ_WRITE
    if "READ" in everyone:
        return ACL_PUBLIC_READ
    if "READ" in group_permissions.get(GROUP_AUTHENTICATED_USERS, set()):
        return ACL_AUTHENTICATED_READ
    if "WRITE" in group_permissions.get(GROUP_LOG_DELIVERY, set()):
        return ACL_LOG_DELIVERY_WRITE
    return ACL_PRIVATE


class AWSBucketReader:
    """Collects bucket settings through read-only S3 API calls."""

    def __init__(
        self,
        region: str,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        session_token: str | None = None,
        path_style: bool = False,
    ) -> None:
        """Initialize the reader.

        Args:
            region: AWS region
            endpoint: Optional S3 endpoint URL (S3-compatible providers)
            access_key: Access key ID (default credential chain when omitted)
            secret_key: Secret access key
            session_token: Optional session token for temporary credentials
            path_style: Use path-style addressing
        """
        self.region = region
        self.endpoint = endpoint

        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if path_style else "auto"},
        )
        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=session_token,
            config=config,
        )

    def _call(self, operation: str, name: str) -> dict[str, Any] | None:
        """Call a ``get_*`` S3 operation; None when the configuration is absent."""
        start_time = time.time()
        try:
            response = getattr(self.client, operation)(Bucket=name)
            metrics.api_call_total.labels(operation=operation, result="success").inc()
            return response
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in MISSING_CONFIGURATION_CODES:
                metrics.api_call_total.labels(operation=operation, result="not_configured").inc()
                return None
            metrics.api_call_total.labels(operation=operation, result="error").inc()
            logger.error(f"Failed to call {operation} for bucket {name}: {e}")
            raise
        finally:
            metrics.api_call_duration_seconds.labels(operation=operation).observe(time.time() - start_time)

    def get_public_access_block(self, name: str) -> dict[str, bool]:
        """Get public access block flags; all False when none is configured."""
        response = self._call("get_public_access_block", name)
        pab = (response or {}).get("PublicAccessBlockConfiguration", {})
        return {
            "blockPublicAcls": pab.get("BlockPublicAcls", False),
            "ignorePublicAcls": pab.get("IgnorePublicAcls", False),
            "blockPublicPolicy": pab.get("BlockPublicPolicy", False),
            "restrictPublicBuckets": pab.get("RestrictPublicBuckets", False),
        }

    def get_object_ownership(self, name: str) -> str | None:
        response = self._call("get_bucket_ownership_controls", name)
        if response is None:
            return None
        rules = response.get("OwnershipControls", {}).get("Rules", [])
        return rules[0].get("ObjectOwnership") if rules else None

    def get_acl_grants(self, name: str) -> list[dict[str, Any]]:
        response = self._call("get_bucket_acl", name)
        return (response or {}).get("Grants", [])

    def get_bucket_policy(self, name: str) -> dict[str, Any] | None:
        """Get bucket policy document, or None if no policy is set."""
        response = self._call("get_bucket_policy", name)
        if response is None:
            return None
        return json.loads(response["Policy"])

    def get_bucket_encryption(self, name: str) -> dict[str, Any] | None:
        """Get the first default encryption rule, or None if encryption is not configured."""
        response = self._call("get_bucket_encryption", name)
        if response is None:
            return None
        rules = response.get("ServerSideEncryptionConfiguration", {}).get("Rules", [])
        if not rules:
            return None
        default = rules[0].get("ApplyServerSideEncryptionByDefault", {})
        encryption: dict[str, Any] = {
            "algorithm": default.get("SSEAlgorithm", "AES256"),
            "bucketKeyEnabled": rules[0].get("BucketKeyEnabled", False),
        }
        if default.get("KMSMasterKeyID"):
            encryption["kmsKeyArn"] = default["KMSMasterKeyID"]
        return encryption

    def get_bucket_versioning(self, name: str) -> bool:
        response = self._call("get_bucket_versioning", name)
        return (response or {}).get("Status") == "Enabled"

    def get_object_lock(self, name: str) -> dict[str, Any] | None:
        response = self._call("get_object_lock_configuration", name)
        if response is None:
            return None
        lock_config = response.get("ObjectLockConfiguration", {})
        lock: dict[str, Any] = {"enabled": lock_config.get("ObjectLockEnabled") == "Enabled"}
        retention = lock_config.get("Rule", {}).get("DefaultRetention")
        if retention:
            lock["mode"] = retention.get("Mode", "GOVERNANCE")
            lock["retention"] = {
                key.lower(): retention[key] for key in ("Days", "Years") if key in retention
            }
        return lock

    def get_bucket_website(self, name: str) -> dict[str, Any] | None:
        response = self._call("get_bucket_website", name)
        if response is None or "IndexDocument" not in response:
            return None
        website = {"indexDocument": response["IndexDocument"].get("Suffix", "")}
        if "ErrorDocument" in response:
            website["errorDocument"] = response["ErrorDocument"].get("Key")
        return website

    def get_bucket_cors(self, name: str) -> list[dict[str, Any]]:
        response = self._call("get_bucket_cors", name)
        rules = []
        for rule in (response or {}).get("CORSRules", []):
            converted: dict[str, Any] = {
                "allowedMethods": rule.get("AllowedMethods", []),
                "allowedOrigins": rule.get("AllowedOrigins", []),
                "allowedHeaders": rule.get("AllowedHeaders", []),
                "exposeHeaders": rule.get("ExposeHeaders", []),
            }
            if "MaxAgeSeconds" in rule:
                converted["maxAgeSeconds"] = rule["MaxAgeSeconds"]
            rules.append(converted)
        return rules

    def read_bucket_spec(self, name: str) -> dict[str, Any]:
        """Collect a bucket's configuration as a bucket document.

        Args:
            name: Bucket name

        Returns:
            Bucket document accepted by ``create_bucket_config_from_spec``

        Raises:
            ClientError: On any AWS error other than a missing configuration
        """
        with trace_span("read_bucket", attributes={"bucket.name": name}):
            ownership = self.get_object_ownership(name)
            spec: dict[str, Any] = {
                "name": name,
                "publicAccessBlock": self.get_public_access_block(name),
                # Buckets without ownership controls behave as ObjectWriter
                "objectOwnership": ownership or "ObjectWriter",
                "versioning": {"enabled": self.get_bucket_versioning(name)},
                "cors": {"rules": self.get_bucket_cors(name)},
            }
            spec["acl"] = canned_acl_from_grants(self.get_acl_grants(name), spec["objectOwnership"])

            policy = self.get_bucket_policy(name)
            if policy is not None:
                spec["policy"] = policy
            encryption = self.get_bucket_encryption(name)
            if encryption is not None:
                spec["encryption"] = encryption
            lock = self.get_object_lock(name)
            if lock is not None:
                spec["objectLock"] = lock
            website = self.get_bucket_website(name)
            if website is not None:
                spec["website"] = website

        log_validation_event(
            logger,
            name,
            event="read",
            reason=EVENT_REASON_BUCKET_READ,
            message=f"Read configuration of bucket {name}",
            region=self.region,
        )
        return spec
