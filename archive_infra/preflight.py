"""Preflight: verify the backup user -> upload role chain from the client's side.

Runs with the backup user's long-term credentials in the environment
(AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY). If preflight passes, the backup
client can obtain upload credentials too. Nothing is written to the bucket.
Exit 0 = all checks passed. Exit 1 = something is broken.
"""

import json
import sys
import time
from collections.abc import Callable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

ROLE_SESSION_NAME = "google-photos-backup"

RESULTS: list[dict] = []


def check(name: str, fn: Callable[[], None], retries: int = 3, backoff: int = 5) -> bool:
    for attempt in range(retries):
        try:
            fn()
            RESULTS.append({"check": name, "status": "PASS"})
            return True
        except (AssertionError, BotoCoreError, ClientError) as e:
            if attempt < retries - 1:
                time.sleep(backoff * (attempt + 1))
            else:
                RESULTS.append({"check": name, "status": "FAIL", "error": str(e)})
    return False


def role_name_from_arn(role_arn: str) -> str:
    # arn:aws:iam::123456789012:role/path/name -> name
    return role_arn.rsplit("/", 1)[-1]


def verify_caller_is_backup_user(sts: Any, user_name: str | None) -> None:
    arn = sts.get_caller_identity()["Arn"]
    assert ":user/" in arn, f"Caller is not an IAM user: {arn}"
    if user_name:
        assert arn.endswith(f"/{user_name}"), f"Caller {arn} is not backup user {user_name}"


def assume_upload_role(sts: Any, role_arn: str) -> dict[str, str]:
    resp = sts.assume_role(RoleArn=role_arn, RoleSessionName=ROLE_SESSION_NAME)
    creds = resp.get("Credentials")
    assert creds, "No credentials in AssumeRole response"
    for key in ("AccessKeyId", "SecretAccessKey", "SessionToken", "Expiration"):
        assert creds.get(key), f"AssumeRole response missing {key}"
    return creds


def verify_assumed_identity(creds: dict[str, str], role_arn: str, region: str | None) -> None:
    session = boto3.Session(
        aws_access_key_id=creds["AccessKeyId"],
        aws_secret_access_key=creds["SecretAccessKey"],
        aws_session_token=creds["SessionToken"],
        region_name=region,
    )
    arn = session.client("sts").get_caller_identity()["Arn"]
    expected = f":assumed-role/{role_name_from_arn(role_arn)}/{ROLE_SESSION_NAME}"
    assert arn.endswith(expected), f"Assumed identity {arn} does not match role {role_arn}"


def run_preflight(
    role_arn: str,
    user_name: str | None = None,
    region: str | None = None,
    retries: int = 3,
    backoff: int = 5,
) -> int:
    """Run all checks, print one JSON line per check, and return the exit code."""
    RESULTS.clear()
    sts = boto3.client("sts", region_name=region)
    assumed: dict[str, dict[str, str]] = {}

    def _assume() -> None:
        assumed["creds"] = assume_upload_role(sts, role_arn)

    check("Caller is the backup user", lambda: verify_caller_is_backup_user(sts, user_name), retries, backoff)
    if check("AssumeRole on upload role", _assume, retries, backoff):
        check(
            "Assumed identity is the upload role",
            lambda: verify_assumed_identity(assumed["creds"], role_arn, region),
            retries,
            backoff,
        )

    for r in RESULTS:
        print(json.dumps(r))

    failed = [r for r in RESULTS if r["status"] == "FAIL"]
    if failed:
        print(f"\n{len(failed)} check(s) FAILED")
        return 1
    print(f"\nAll {len(RESULTS)} checks PASSED")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m archive_infra.preflight <upload-role-arn> [backup-user-name]", file=sys.stderr)
        sys.exit(2)
    sys.exit(run_preflight(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
