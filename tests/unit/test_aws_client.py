"""Unit tests for the read-only AWS bucket reader."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from s3_bucket_validator.builders.bucket import create_bucket_config_from_spec
from s3_bucket_validator.services.aws.client import AWSBucketReader, canned_acl_from_grants
from s3_bucket_validator.validator import validate

ALL_USERS = {"Type": "Group", "URI": "http://acs.amazonaws.com/groups/global/AllUsers"}
OWNER = {"Type": "CanonicalUser", "ID": "owner-id"}


def _not_found(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code}}, operation)


class TestCannedAclFromGrants:
    """Test mapping ACL grants onto canned ACLs."""

    def test_owner_enforced(self) -> None:
        """Test that ACLs are absent when ownership is enforced."""
        assert canned_acl_from_grants([{"Grantee": ALL_USERS, "Permission": "READ"}], "BucketOwnerEnforced") == "none"

    def test_private(self) -> None:
        """Test owner-only grants."""
        assert canned_acl_from_grants([{"Grantee": OWNER, "Permission": "FULL_CONTROL"}], "ObjectWriter") == "private"

    def test_public_read(self) -> None:
        """Test AllUsers READ."""
        grants = [
            {"Grantee": OWNER, "Permission": "FULL_CONTROL"},
            {"Grantee": ALL_USERS, "Permission": "READ"},
        ]
        assert canned_acl_from_grants(grants, "ObjectWriter") == "public-read"

    def test_public_read_write(self) -> None:
        """Test AllUsers WRITE."""
        grants = [
            {"Grantee": ALL_USERS, "Permission": "READ"},
            {"Grantee": ALL_USERS, "Permission": "WRITE"},
        ]
        assert canned_acl_from_grants(grants, "BucketOwnerPreferred") == "public-read-write"

    def test_authenticated_read(self) -> None:
        """Test AuthenticatedUsers READ."""
        grantee = {"Type": "Group", "URI": "http://acs.amazonaws.com/groups/global/AuthenticatedUsers"}
        assert canned_acl_from_grants([{"Grantee": grantee, "Permission": "READ"}], None) == "authenticated-read"

    def test_log_delivery_write(self) -> None:
        """Test LogDelivery WRITE."""
        grantee = {"Type": "Group", "URI": "http://acs.amazonaws.com/groups/s3/LogDelivery"}
        assert canned_acl_from_grants([{"Grantee": grantee, "Permission": "WRITE"}], None) == "log-delivery-write"


class TestAWSBucketReader:
    """Test AWSBucketReader."""

    @pytest.fixture
    def reader(self) -> AWSBucketReader:
        """Create a test reader with a mocked client."""
        reader = AWSBucketReader(
            region="us-east-1",
            access_key="test-access-key",
            secret_key="test-secret-key",
        )
        reader.client = MagicMock()
        return reader

    def test_public_access_block_missing(self, reader: AWSBucketReader) -> None:
        """Test that a missing public access block means nothing is blocked."""
        reader.client.get_public_access_block.side_effect = _not_found(
            "NoSuchPublicAccessBlockConfiguration", "GetPublicAccessBlock"
        )

        assert reader.get_public_access_block("test-bucket") == {
            "blockPublicAcls": False,
            "ignorePublicAcls": False,
            "blockPublicPolicy": False,
            "restrictPublicBuckets": False,
        }

    def test_get_bucket_policy(self, reader: AWSBucketReader) -> None:
        """Test that the policy JSON is decoded."""
        policy = {"Version": "2012-10-17", "Statement": []}
        reader.client.get_bucket_policy.return_value = {"Policy": json.dumps(policy)}

        assert reader.get_bucket_policy("test-bucket") == policy
        reader.client.get_bucket_policy.assert_called_once_with(Bucket="test-bucket")

    def test_get_bucket_policy_missing(self, reader: AWSBucketReader) -> None:
        """Test that a missing policy returns None."""
        reader.client.get_bucket_policy.side_effect = _not_found("NoSuchBucketPolicy", "GetBucketPolicy")
        assert reader.get_bucket_policy("test-bucket") is None

    def test_access_denied_raises(self, reader: AWSBucketReader) -> None:
        """Test that other errors propagate."""
        reader.client.get_bucket_policy.side_effect = _not_found("AccessDenied", "GetBucketPolicy")

        with pytest.raises(ClientError):
            reader.get_bucket_policy("test-bucket")

    def test_get_bucket_encryption(self, reader: AWSBucketReader) -> None:
        """Test the default encryption rule is converted."""
        reader.client.get_bucket_encryption.return_value = {
            "ServerSideEncryptionConfiguration": {
                "Rules": [
                    {
                        "ApplyServerSideEncryptionByDefault": {
                            "SSEAlgorithm": "aws:kms",
                            "KMSMasterKeyID": "arn:aws:kms:us-east-1:111122223333:key/k",
                        },
                        "BucketKeyEnabled": True,
                    }
                ]
            }
        }

        assert reader.get_bucket_encryption("test-bucket") == {
            "algorithm": "aws:kms",
            "bucketKeyEnabled": True,
            "kmsKeyArn": "arn:aws:kms:us-east-1:111122223333:key/k",
        }

    def test_get_object_lock(self, reader: AWSBucketReader) -> None:
        """Test the object lock configuration is converted."""
        reader.client.get_object_lock_configuration.return_value = {
            "ObjectLockConfiguration": {
                "ObjectLockEnabled": "Enabled",
                "Rule": {"DefaultRetention": {"Mode": "COMPLIANCE", "Years": 7}},
            }
        }

        assert reader.get_object_lock("test-bucket") == {
            "enabled": True,
            "mode": "COMPLIANCE",
            "retention": {"years": 7},
        }

    def test_get_bucket_cors(self, reader: AWSBucketReader) -> None:
        """Test CORS rules are converted."""
        reader.client.get_bucket_cors.return_value = {
            "CORSRules": [{"AllowedOrigins": ["*"], "AllowedMethods": ["PUT"], "MaxAgeSeconds": 300}]
        }

        assert reader.get_bucket_cors("test-bucket") == [
            {
                "allowedMethods": ["PUT"],
                "allowedOrigins": ["*"],
                "allowedHeaders": [],
                "exposeHeaders": [],
                "maxAgeSeconds": 300,
            }
        ]

    @staticmethod
    def _unconfigured(reader: AWSBucketReader) -> None:
        reader.client.get_bucket_ownership_controls.side_effect = _not_found(
            "OwnershipControlsNotFoundError", "GetBucketOwnershipControls"
        )
        reader.client.get_public_access_block.side_effect = _not_found(
            "NoSuchPublicAccessBlockConfiguration", "GetPublicAccessBlock"
        )
        reader.client.get_bucket_versioning.return_value = {}
        reader.client.get_bucket_cors.side_effect = _not_found("NoSuchCORSConfiguration", "GetBucketCors")
        reader.client.get_bucket_acl.return_value = {
            "Grants": [{"Grantee": OWNER, "Permission": "FULL_CONTROL"}]
        }
        reader.client.get_bucket_policy.side_effect = _not_found("NoSuchBucketPolicy", "GetBucketPolicy")
        reader.client.get_bucket_encryption.side_effect = _not_found(
            "ServerSideEncryptionConfigurationNotFoundError", "GetBucketEncryption"
        )
        reader.client.get_object_lock_configuration.side_effect = _not_found(
            "ObjectLockConfigurationNotFoundError", "GetObjectLockConfiguration"
        )
        reader.client.get_bucket_website.side_effect = _not_found("NoSuchWebsiteConfiguration", "GetBucketWebsite")

    def test_read_bucket_spec_unconfigured_bucket(self, reader: AWSBucketReader) -> None:
        """Test reading a bucket with nothing configured."""
        self._unconfigured(reader)
        spec = reader.read_bucket_spec("legacy-bucket")

        assert spec["name"] == "legacy-bucket"
        assert spec["objectOwnership"] == "ObjectWriter"
        assert spec["acl"] == "private"
        assert "isExistingBucket" not in spec
        assert "policy" not in spec
        assert "encryption" not in spec

        config = create_bucket_config_from_spec(spec)
        rules = [f.rule for f in validate(config).findings]
        assert rules == ["EncryptionPresence", "TransportEnforcement"]

    def test_read_compliance_locked_bucket_passes(self, reader: AWSBucketReader) -> None:
        """Test that a correctly configured COMPLIANCE bucket validates cleanly."""
        self._unconfigured(reader)
        reader.client.get_bucket_ownership_controls.side_effect = None
        reader.client.get_bucket_ownership_controls.return_value = {
            "OwnershipControls": {"Rules": [{"ObjectOwnership": "BucketOwnerEnforced"}]}
        }
        reader.client.get_public_access_block.side_effect = None
        reader.client.get_public_access_block.return_value = {
            "PublicAccessBlockConfiguration": {
                "BlockPublicAcls": True,
                "IgnorePublicAcls": True,
                "BlockPublicPolicy": True,
                "RestrictPublicBuckets": True,
            }
        }
        reader.client.get_bucket_versioning.return_value = {"Status": "Enabled"}
        reader.client.get_bucket_encryption.side_effect = None
        reader.client.get_bucket_encryption.return_value = {
            "ServerSideEncryptionConfiguration": {
                "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}]
            }
        }
        reader.client.get_bucket_policy.side_effect = None
        reader.client.get_bucket_policy.return_value = {
            "Policy": json.dumps({
                "Version": "2012-10-17",
                "Statement": [{
                    "Effect": "Deny",
                    "Principal": "*",
                    "Action": "s3:*",
                    "Resource": "arn:aws:s3:::vault/*",
                    "Condition": {"Bool": {"aws:SecureTransport": "false"}},
                }],
            })
        }
        reader.client.get_object_lock_configuration.side_effect = None
        reader.client.get_object_lock_configuration.return_value = {
            "ObjectLockConfiguration": {
                "ObjectLockEnabled": "Enabled",
                "Rule": {"DefaultRetention": {"Mode": "COMPLIANCE", "Days": 30}},
            }
        }

        result = validate(create_bucket_config_from_spec(reader.read_bucket_spec("vault")))

        assert result.findings == ()
        assert result.passed is True

    def test_read_bucket_spec_never_writes(self, reader: AWSBucketReader) -> None:
        """Test that reading issues no put or delete calls."""
        self._unconfigured(reader)
        reader.read_bucket_spec("test-bucket")

        called = {name for name, _, _ in reader.client.mock_calls}
        assert called
        assert not any(name.startswith(("put_", "delete_", "create_")) for name in called)
