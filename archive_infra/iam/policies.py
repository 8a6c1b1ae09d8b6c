"""IAM policy documents for the upload chain and the bucket.

Each builder returns a plain dict; ``render`` turns it into the JSON string
AWS expects. Documents are built from resolved ARN strings, so callers run
them inside ``Output.apply``.
"""

import json
from typing import Any

POLICY_VERSION = "2012-10-17"
PUT_OBJECT = "s3:PutObject"
ASSUME_ROLE = "sts:AssumeRole"


def upload_objects_policy(bucket_arn: str) -> dict[str, Any]:
    """Allow writing (create or overwrite) any object in the bucket. Nothing else."""
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": [PUT_OBJECT],
                "Resource": [f"{bucket_arn}/*"],
            }
        ],
    }


def assume_role_policy(role_arn: str) -> dict[str, Any]:
    """Allow assuming exactly one role."""
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": [ASSUME_ROLE],
                "Resource": [role_arn],
            }
        ],
    }


def trust_policy(principal_arn: str) -> dict[str, Any]:
    """Trust exactly one IAM principal to assume the role.

    Raises:
        ValueError: If the principal is empty or a wildcard.
    """
    if not principal_arn or "*" in principal_arn:
        raise ValueError(f"trust policy needs a concrete principal ARN, got {principal_arn!r}")
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Action": ASSUME_ROLE,
                "Effect": "Allow",
                "Principal": {"AWS": principal_arn},
            }
        ],
    }


def tls_only_bucket_policy(bucket_arn: str) -> dict[str, Any]:
    """Deny every request to the bucket or its objects made without TLS."""
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Sid": "DenyInsecureTransport",
                "Effect": "Deny",
                "Principal": {"AWS": "*"},
                "Action": "s3:*",
                "Resource": [bucket_arn, f"{bucket_arn}/*"],
                "Condition": {"Bool": {"aws:SecureTransport": "false"}},
            }
        ],
    }


def render(document: dict[str, Any]) -> str:
    """Serialize a policy document; identical input gives identical output."""
    return json.dumps(document, sort_keys=True)
