"""Tests for IAM and bucket policy documents."""

import json

import pytest

from archive_infra.iam.policies import (
    assume_role_policy,
    render,
    tls_only_bucket_policy,
    trust_policy,
    upload_objects_policy,
)

BUCKET_ARN = "arn:aws:s3:::google-photos-backup-p3n8wd5z1fyc"
ROLE_ARN = "arn:aws:iam::123456789012:role/PhotoUploadRole"
USER_ARN = "arn:aws:iam::123456789012:user/google-photos-backup-user"


def _actions(statement: dict) -> list[str]:
    action = statement["Action"]
    return [action] if isinstance(action, str) else list(action)


def test_upload_policy_grants_only_put_object_on_bucket_objects() -> None:
    """Exactly one statement, one action (s3:PutObject), one resource (<bucket>/*)."""
    doc = upload_objects_policy(BUCKET_ARN)
    assert doc["Version"] == "2012-10-17"
    assert len(doc["Statement"]) == 1
    stmt = doc["Statement"][0]
    assert stmt["Effect"] == "Allow"
    assert _actions(stmt) == ["s3:PutObject"]
    assert stmt["Resource"] == [f"{BUCKET_ARN}/*"]


def test_upload_policy_has_no_read_list_or_delete() -> None:
    rendered = render(upload_objects_policy(BUCKET_ARN))
    for forbidden in ("GetObject", "ListBucket", "DeleteObject", "s3:*"):
        assert forbidden not in rendered


def test_assume_role_policy_targets_only_upload_role() -> None:
    doc = assume_role_policy(ROLE_ARN)
    assert len(doc["Statement"]) == 1
    stmt = doc["Statement"][0]
    assert stmt["Effect"] == "Allow"
    assert _actions(stmt) == ["sts:AssumeRole"]
    assert stmt["Resource"] == [ROLE_ARN]


def test_trust_policy_names_exactly_the_backup_user() -> None:
    doc = trust_policy(USER_ARN)
    assert len(doc["Statement"]) == 1
    stmt = doc["Statement"][0]
    assert stmt["Effect"] == "Allow"
    assert _actions(stmt) == ["sts:AssumeRole"]
    assert stmt["Principal"] == {"AWS": USER_ARN}


@pytest.mark.parametrize("principal", ["", "*", "arn:aws:iam::123456789012:*"])
def test_trust_policy_rejects_wildcard_or_empty_principal(principal: str) -> None:
    with pytest.raises(ValueError, match="concrete principal"):
        trust_policy(principal)


def test_tls_only_policy_denies_insecure_transport_on_bucket_and_objects() -> None:
    doc = tls_only_bucket_policy(BUCKET_ARN)
    stmt = doc["Statement"][0]
    assert stmt["Effect"] == "Deny"
    assert stmt["Action"] == "s3:*"
    assert stmt["Resource"] == [BUCKET_ARN, f"{BUCKET_ARN}/*"]
    assert stmt["Condition"] == {"Bool": {"aws:SecureTransport": "false"}}


def test_render_is_deterministic_and_valid_json() -> None:
    """Rendering the same document twice gives byte-identical output."""
    first = render(trust_policy(USER_ARN))
    second = render(trust_policy(USER_ARN))
    assert first == second
    assert json.loads(first) == trust_policy(USER_ARN)


def test_render_ignores_key_insertion_order() -> None:
    a = {"Version": "2012-10-17", "Statement": []}
    b = {"Statement": [], "Version": "2012-10-17"}
    assert render(a) == render(b)
