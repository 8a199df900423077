"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any

import pytest

KMS_KEY_ARN = "arn:aws:kms:us-east-1:111122223333:key/1234abcd-12ab-34cd-56ef-1234567890ab"

DENY_INSECURE_TRANSPORT = {
    "sid": "DenyInsecureTransport",
    "effect": "Deny",
    "principal": "*",
    "action": "s3:*",
    "resource": ["arn:aws:s3:::secure-bucket", "arn:aws:s3:::secure-bucket/*"],
    "condition": {"Bool": {"aws:SecureTransport": "false"}},
}


@pytest.fixture
def secure_spec() -> dict[str, Any]:
    """A bucket document that produces no findings."""
    return {
        "name": "secure-bucket",
        "publicAccessBlock": {
            "blockPublicAcls": True,
            "ignorePublicAcls": True,
            "blockPublicPolicy": True,
            "restrictPublicBuckets": True,
        },
        "objectOwnership": "BucketOwnerEnforced",
        "encryption": {
            "algorithm": "aws:kms",
            "kmsKeyArn": KMS_KEY_ARN,
            "bucketKeyEnabled": True,
        },
        "versioning": {"enabled": True},
        "policy": {
            "version": "2012-10-17",
            "statement": [dict(DENY_INSECURE_TRANSPORT)],
        },
    }
