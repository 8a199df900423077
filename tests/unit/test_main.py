"""Unit tests for the command line entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import yaml
from botocore.exceptions import ClientError

from s3_bucket_validator.main import EXIT_FAILED, EXIT_INPUT_ERROR, EXIT_OK, main


def _write(tmp_path: Path, name: str, document: Any) -> str:
    path = tmp_path / name
    if name.endswith(".json"):
        path.write_text(json.dumps(document))
    else:
        path.write_text(yaml.safe_dump(document))
    return str(path)


class TestCheckCommand:
    """Test the check subcommand."""

    def test_clean_document(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that a clean document exits 0 with a JSON report."""
        path = _write(tmp_path, "bucket.json", secure_spec)

        assert main(["check", path]) == EXIT_OK

        report = json.loads(capsys.readouterr().out)
        assert report["bucket"] == "secure-bucket"
        assert report["passed"] is True
        assert report["findings"] == []

    def test_warnings_do_not_fail(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that warnings keep the exit code at 0."""
        del secure_spec["encryption"]
        path = _write(tmp_path, "bucket.yaml", secure_spec)

        assert main(["check", path]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["warningCount"] == 1

    def test_errors_fail(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that errors exit 1."""
        secure_spec["acl"] = "public-read"
        path = _write(tmp_path, "bucket.yaml", secure_spec)

        assert main(["check", path, "--format", "text"]) == EXIT_FAILED
        assert "FAIL secure-bucket" in capsys.readouterr().out

    def test_manifest(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that a Bucket manifest is unwrapped."""
        del secure_spec["name"]
        manifest = {
            "apiVersion": "s3.cloud37.dev/v1alpha1",
            "kind": "Bucket",
            "metadata": {"name": "from-metadata"},
            "spec": secure_spec,
        }
        path = _write(tmp_path, "bucket.yaml", manifest)

        assert main(["check", path]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["bucket"] == "from-metadata"

    def test_existing_flag(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that --existing marks the bucket as existing."""
        secure_spec["objectLock"] = {"enabled": True, "mode": "COMPLIANCE", "retention": {"days": 1}}
        path = _write(tmp_path, "bucket.yaml", secure_spec)

        assert main(["check", path]) == EXIT_OK
        assert main(["check", path, "--existing"]) == EXIT_FAILED

    def test_allow_public_flag(self, tmp_path: Path, capsys) -> None:
        """Test that --allow-public acknowledges public exposure."""
        spec = {
            "name": "site",
            "publicAccessBlock": {"blockPublicPolicy": False},
            "policy": {"statement": [{"effect": "Allow", "principal": "*", "action": "s3:GetObject"}]},
        }
        path = _write(tmp_path, "site.yaml", spec)

        main(["check", path])
        codes = [f["code"] for f in json.loads(capsys.readouterr().out)["findings"]]
        assert "UnacknowledgedPublicExposure" in codes

        main(["check", path, "--allow-public"])
        codes = [f["code"] for f in json.loads(capsys.readouterr().out)["findings"]]
        assert "UnacknowledgedPublicExposure" not in codes

    def test_malformed(self, tmp_path: Path, capsys) -> None:
        """Test that malformed documents exit 2."""
        spec = {"name": "vault", "objectLock": {"enabled": True, "retention": {"days": 1, "years": 1}}}
        path = _write(tmp_path, "vault.yaml", spec)

        assert main(["check", path]) == EXIT_INPUT_ERROR
        assert "objectLock.retention" in capsys.readouterr().err

    def test_unparseable_file(self, tmp_path: Path, capsys) -> None:
        """Test that invalid YAML exits 2."""
        path = tmp_path / "broken.yaml"
        path.write_text("name: [unterminated")

        assert main(["check", str(path)]) == EXIT_INPUT_ERROR
        assert capsys.readouterr().err.startswith("Error:")

    def test_missing_file(self, tmp_path: Path, capsys) -> None:
        """Test that a missing file exits 2."""
        assert main(["check", str(tmp_path / "absent.yaml")]) == EXIT_INPUT_ERROR

    def test_metrics_file(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that metrics are written when requested."""
        path = _write(tmp_path, "bucket.json", secure_spec)
        metrics_file = tmp_path / "validator.prom"

        main(["--metrics-file", str(metrics_file), "check", path])

        assert "s3_bucket_validator_validations_total" in metrics_file.read_text()

    def test_unwritable_metrics_file_keeps_exit_code(
        self, tmp_path: Path, secure_spec: dict[str, Any], capsys
    ) -> None:
        """Test that a failed metrics write does not change the result."""
        path = _write(tmp_path, "bucket.json", secure_spec)
        metrics_file = tmp_path / "missing-dir" / "validator.prom"

        assert main(["--metrics-file", str(metrics_file), "check", path]) == EXIT_OK
        assert json.loads(capsys.readouterr().out)["passed"] is True

    def test_invalid_settings(self, tmp_path: Path, secure_spec: dict[str, Any], monkeypatch, capsys) -> None:
        """Test that a bad environment setting exits 2."""
        monkeypatch.setenv("S3_VALIDATOR_MAX_WORKERS", "many")
        path = _write(tmp_path, "bucket.json", secure_spec)

        assert main(["check", path]) == EXIT_INPUT_ERROR
        assert "S3_VALIDATOR_MAX_WORKERS" in capsys.readouterr().err


class TestDiffCommand:
    """Test the diff subcommand."""

    def test_in_place(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test an in-place change exits 0."""
        current = _write(tmp_path, "current.yaml", secure_spec)
        secure_spec["versioning"] = {"enabled": False}
        desired = _write(tmp_path, "desired.yaml", secure_spec)

        assert main(["diff", current, desired]) == EXIT_OK

        output = json.loads(capsys.readouterr().out)
        assert output["requiresReplacement"] is False
        assert output["changes"][0]["field"] == "versioningEnabled"

    def test_replacement(self, tmp_path: Path, secure_spec: dict[str, Any], capsys) -> None:
        """Test that enabling Object Lock exits 1."""
        current = _write(tmp_path, "current.yaml", secure_spec)
        secure_spec["objectLock"] = {"enabled": True}
        desired = _write(tmp_path, "desired.yaml", secure_spec)

        assert main(["diff", current, desired]) == EXIT_FAILED
        assert json.loads(capsys.readouterr().out)["requiresReplacement"] is True


class TestInspectCommand:
    """Test the inspect subcommand."""

    @patch("s3_bucket_validator.main.AWSBucketReader")
    def test_inspect(self, mock_reader_cls: MagicMock, secure_spec: dict[str, Any], capsys) -> None:
        """Test validating a live bucket."""
        mock_reader_cls.return_value.read_bucket_spec.return_value = secure_spec

        assert main(["inspect", "secure-bucket", "--region", "eu-west-1"]) == EXIT_OK

        mock_reader_cls.assert_called_once_with(region="eu-west-1", endpoint=None, path_style=False)
        assert json.loads(capsys.readouterr().out)["passed"] is True

    @patch("s3_bucket_validator.main.AWSBucketReader")
    def test_inspect_aws_error(self, mock_reader_cls: MagicMock, capsys) -> None:
        """Test that AWS errors exit 2."""
        mock_reader_cls.return_value.read_bucket_spec.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "GetBucketAcl"
        )

        assert main(["inspect", "secure-bucket"]) == EXIT_INPUT_ERROR
        assert "AWS request failed" in capsys.readouterr().err


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("S3_VALIDATOR_METRICS_FILE", "S3_ENDPOINT_URL", "S3_VALIDATOR_PARALLEL", "S3_VALIDATOR_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
