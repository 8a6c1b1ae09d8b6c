"""Tests for the preflight checks (backup user -> upload role)."""

import json
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
import pytest

from archive_infra import preflight

ROLE_ARN = "arn:aws:iam::123456789012:role/PhotoUploadRole"
USER_ARN = "arn:aws:iam::123456789012:user/google-photos-backup-user"
ASSUMED_ARN = "arn:aws:sts::123456789012:assumed-role/PhotoUploadRole/google-photos-backup"
CREDS = {
    "AccessKeyId": "ASIAEXAMPLE",
    "SecretAccessKey": "secret",
    "SessionToken": "token",
    "Expiration": "2026-01-01T00:00:00Z",
}


def _sts(caller_arn: str = USER_ARN) -> MagicMock:
    sts = MagicMock()
    sts.get_caller_identity.return_value = {"Arn": caller_arn}
    sts.assume_role.return_value = {"Credentials": CREDS}
    return sts


def test_role_name_from_arn() -> None:
    assert preflight.role_name_from_arn("arn:aws:iam::1:role/path/to/Upload") == "Upload"


@patch("archive_infra.preflight.boto3.Session")
@patch("archive_infra.preflight.boto3.client")
def test_run_preflight_all_pass(
    mock_client: MagicMock,
    mock_session: MagicMock,
    capsys: pytest.CaptureFixture[str],
) -> None:
    sts = _sts()
    mock_client.return_value = sts
    mock_session.return_value.client.return_value.get_caller_identity.return_value = {"Arn": ASSUMED_ARN}

    code = preflight.run_preflight(ROLE_ARN, "google-photos-backup-user", region="us-east-1", retries=1)

    assert code == 0
    sts.assume_role.assert_called_once_with(RoleArn=ROLE_ARN, RoleSessionName="google-photos-backup")
    session_kw = mock_session.call_args.kwargs
    assert session_kw["aws_session_token"] == "token"
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    assert [r["status"] for r in lines] == ["PASS", "PASS", "PASS"]


@patch("archive_infra.preflight.boto3.Session")
@patch("archive_infra.preflight.boto3.client")
def test_run_preflight_assume_role_denied(mock_client: MagicMock, mock_session: MagicMock) -> None:
    """A denied AssumeRole fails and skips the assumed-identity check."""
    sts = _sts()
    sts.assume_role.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "not authorized"}},
        "AssumeRole",
    )
    mock_client.return_value = sts

    code = preflight.run_preflight(ROLE_ARN, retries=1, backoff=0)

    assert code == 1
    assert [r["status"] for r in preflight.RESULTS] == ["PASS", "FAIL"]
    assert "AccessDenied" in preflight.RESULTS[1]["error"]
    mock_session.assert_not_called()


@patch("archive_infra.preflight.boto3.Session")
@patch("archive_infra.preflight.boto3.client")
def test_run_preflight_wrong_caller(mock_client: MagicMock, mock_session: MagicMock) -> None:
    """Running with admin (role) credentials instead of the backup user is reported."""
    mock_client.return_value = _sts(caller_arn="arn:aws:sts::123456789012:assumed-role/Admin/me")
    mock_session.return_value.client.return_value.get_caller_identity.return_value = {"Arn": ASSUMED_ARN}

    code = preflight.run_preflight(ROLE_ARN, "google-photos-backup-user", retries=1, backoff=0)

    assert code == 1
    assert preflight.RESULTS[0]["status"] == "FAIL"


@patch("archive_infra.preflight.time.sleep")
def test_check_retries_then_passes(mock_sleep: MagicMock) -> None:
    preflight.RESULTS.clear()
    attempts = {"n": 0}

    def flaky() -> None:
        attempts["n"] += 1
        assert attempts["n"] >= 2, "not yet"

    assert preflight.check("flaky", flaky, retries=3, backoff=1) is True
    assert attempts["n"] == 2
    mock_sleep.assert_called_once_with(1)
    assert preflight.RESULTS == [{"check": "flaky", "status": "PASS"}]


def test_assume_upload_role_requires_session_token() -> None:
    sts = MagicMock()
    sts.assume_role.return_value = {"Credentials": {**CREDS, "SessionToken": ""}}
    with pytest.raises(AssertionError, match="SessionToken"):
        preflight.assume_upload_role(sts, ROLE_ARN)
