"""
Archive infrastructure CLI: setup, deploy, preview, outputs, list, destroy, verify.
Run `archive setup` once; then `archive deploy <archive.yaml>` and `archive outputs <name>`.
"""

import json
import os
from pathlib import Path
import subprocess
import sys
from typing import Any

import yaml

CONFIG_DIR = ".archive-infra"
CONFIG_FILENAME = "config.yaml"
PROJECT_DIR = "archive_infra"
TAG_MANAGED_BY = "managed-by"
TAG_MANAGED_VALUE = "archive-infra"
TAG_STACK = "stack"
DEFAULT_STACK_PREFIX = "prod"
KMS_SECRETS_PROVIDER_TEMPLATE = "awskms://alias/pulumi_backend_archive?region={region}"

# Stack export -> environment variable read by the backup client.
CLIENT_ENV_VARS = {
    "bucket_name": "S3_BUCKET_NAME",
    "upload_role_arn": "AWS_UPLOAD_ROLE_ARN",
    "backup_user_name": "BACKUP_USER_NAME",
}


def _project_root() -> Path:
    """Directory containing archive_infra/ (and pyproject.toml). Use cwd as default."""
    return Path.cwd()


def _config_path() -> Path:
    return _project_root() / CONFIG_DIR / CONFIG_FILENAME


def _load_config() -> dict[str, Any] | None:
    path = _config_path()
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else None


def _save_config(backend_url: str, region: str, stack_prefix: str = DEFAULT_STACK_PREFIX) -> None:
    path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            {
                "backend_url": backend_url,
                "region": region,
                "stack_prefix": stack_prefix,
            },
            f,
            default_flow_style=False,
        )
    print(f"Configuration saved to {path}")


def _require_config() -> dict[str, Any]:
    config = _load_config()
    if not config or not config.get("backend_url") or not config.get("region"):
        print("Configuration missing or incomplete. Run: archive setup", file=sys.stderr)
        sys.exit(1)
    return config


def _check_aws_credentials() -> bool:
    try:
        subprocess.run(
            ["aws", "sts", "get-caller-identity"],
            capture_output=True,
            check=True,
            timeout=10,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        return False


def _run(
    cmd: list[str],
    env: dict[str, str] | None = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    full_env = os.environ.copy()
    if env:
        full_env.update(env)
    return subprocess.run(
        cmd,
        cwd=_project_root(),
        env=full_env,
        check=check,
        capture_output=capture,
        text=capture,
    )


def _pulumi(*args: str) -> list[str]:
    return ["pulumi", *args, "-C", PROJECT_DIR]


def _stack_name_from_yaml(path: Path) -> str:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    try:
        return data["metadata"]["name"]
    except (TypeError, KeyError):
        print(f"{path}: metadata.name is required", file=sys.stderr)
        sys.exit(1)


def _stack_name(name: str, config: dict[str, Any]) -> str:
    prefix = config.get("stack_prefix", DEFAULT_STACK_PREFIX)
    region = config["region"]
    return f"{prefix}.{name}.{region}"


def _require_project() -> None:
    if not (_project_root() / PROJECT_DIR / "Pulumi.yaml").exists():
        print(f"{PROJECT_DIR}/Pulumi.yaml not found. Run this from the archive-infra repo root.", file=sys.stderr)
        sys.exit(1)


def _resolve_yaml(archive_yaml_path: str) -> Path:
    path = Path(archive_yaml_path)
    if not path.is_absolute():
        path = _project_root() / path
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        sys.exit(1)
    return path


def _select_stack(archive_yaml_path: str, config: dict[str, Any]) -> tuple[str, dict[str, str]]:
    """Select (or init) the stack for an archive.yaml and set its region. Returns (name, env)."""
    path = _resolve_yaml(archive_yaml_path)
    _require_project()
    name = _stack_name_from_yaml(path)
    stack = _stack_name(name, config)
    region = config["region"]
    env = {
        "ARCHIVE_YAML_PATH": str(path.resolve()),
        "PULUMI_BACKEND_URL": config["backend_url"],
    }
    select = _run(_pulumi("stack", "select", stack), env=env, check=False)
    if select.returncode != 0:
        kms = KMS_SECRETS_PROVIDER_TEMPLATE.format(region=region)
        _run(_pulumi("stack", "init", stack, "--secrets-provider", kms), env=env)
    _run(_pulumi("config", "set", "aws:region", region), env=env)
    return name, env


def _stack_outputs(name: str, config: dict[str, Any]) -> dict[str, Any]:
    stack = _stack_name(name, config)
    env = {"PULUMI_BACKEND_URL": config["backend_url"]}
    result = _run(
        _pulumi("stack", "output", "--json", "--stack", stack),
        env=env,
        check=False,
        capture=True,
    )
    if result.returncode != 0:
        print(f"No outputs for archive '{name}' (stack {stack}). Deploy it first.", file=sys.stderr)
        sys.exit(1)
    return json.loads(result.stdout or "{}")


def client_env_lines(outputs: dict[str, Any]) -> list[str]:
    """Render stack outputs as KEY=value lines for the backup client's .env file."""
    lines = []
    for export_key, env_key in CLIENT_ENV_VARS.items():
        value = outputs.get(export_key)
        if not value:
            print(f"Stack output '{export_key}' is missing or empty", file=sys.stderr)
            sys.exit(1)
        lines.append(f"{env_key}={value}")
    return lines


# --- setup ---


def _cmd_setup() -> None:
    print("First-time setup. You will need:")
    print("  1) AWS credentials with rights to create S3 buckets and IAM users/roles")
    print("  2) S3 URI for infrastructure state (e.g. s3://your-account-pulumi-backend-archive)")
    print("  3) Default AWS region (e.g. us-east-1)")
    print()

    if not _check_aws_credentials():
        print("AWS credentials not found. Log in (e.g. aws sso login) and try again.", file=sys.stderr)
        sys.exit(1)
    print("AWS credentials OK.")

    backend_url = os.environ.get("ARCHIVE_INFRA_BACKEND_URL", "").strip()
    if not backend_url:
        backend_url = input("S3 URI for infrastructure state: ").strip()
    if not backend_url:
        print("Backend URL is required.", file=sys.stderr)
        sys.exit(1)

    region = os.environ.get("ARCHIVE_INFRA_REGION", "").strip()
    if not region:
        region = input("Default AWS region (e.g. us-east-1): ").strip()
    if not region:
        print("Region is required.", file=sys.stderr)
        sys.exit(1)

    stack_prefix = os.environ.get("ARCHIVE_INFRA_STACK_PREFIX", DEFAULT_STACK_PREFIX).strip() or DEFAULT_STACK_PREFIX
    _save_config(backend_url, region, stack_prefix)
    print("Setup complete. You can now use: archive deploy <path>, archive outputs <name>, archive list")


# --- list ---


def _cmd_list() -> None:
    import boto3

    config = _load_config()
    region = config.get("region") if config else os.environ.get("AWS_REGION", "us-east-1")
    client = boto3.client("resourcegroupstaggingapi", region_name=region)
    stacks: dict[str, list[dict[str, str]]] = {}

    paginator = client.get_paginator("get_resources")
    for page in paginator.paginate(
        TagFilters=[{"Key": TAG_MANAGED_BY, "Values": [TAG_MANAGED_VALUE]}],
        ResourcesPerPage=100,
    ):
        for r in page.get("ResourceTagList", []):
            arn = r.get("ResourceARN", "")
            tags = {t["Key"]: t["Value"] for t in r.get("Tags", [])}
            name = tags.get(TAG_STACK, "?")
            resource_type = arn.split(":")[2] if ":" in arn else "resource"
            stacks.setdefault(name, []).append({"arn": arn, "type": resource_type})

    if not stacks:
        print("No archive-infra managed resources found.")
        return
    for name in sorted(stacks.keys()):
        print(f"\n{name}")
        for r in stacks[name]:
            print(f"  {r['type']}: {r['arn']}")


# --- deploy / preview ---


def _cmd_deploy(archive_yaml_path: str) -> None:
    config = _require_config()
    name, env = _select_stack(archive_yaml_path, config)
    print(f"Provisioning archive '{name}'...")
    _run(_pulumi("up", "-y"), env=env)
    print(f"Archive '{name}' provisioned. Next:")
    print("  1) Create an access key for the backup user in the AWS console")
    print(f"  2) Run: archive outputs {name} >> .env")


def _cmd_preview(archive_yaml_path: str) -> None:
    config = _require_config()
    _name, env = _select_stack(archive_yaml_path, config)
    _run(_pulumi("preview", "--diff"), env=env)


# --- outputs ---


def _cmd_outputs(name: str) -> None:
    config = _require_config()
    _require_project()
    for line in client_env_lines(_stack_outputs(name, config)):
        print(line)


# --- destroy ---


def _cmd_destroy(name: str) -> None:
    config = _require_config()
    stack = _stack_name(name, config)
    _require_project()

    env = {"PULUMI_BACKEND_URL": config["backend_url"]}
    select = _run(_pulumi("stack", "select", stack), env=env, check=False)
    if select.returncode != 0:
        print(f"No infrastructure found for archive '{name}' (stack {stack}).", file=sys.stderr)
        sys.exit(1)
    confirm = input(f"This will remove the IAM user and role for archive '{name}'. Continue? [y/N]: ")
    if confirm.strip().lower() != "y":
        print("Cancelled.")
        sys.exit(0)
    _run(_pulumi("destroy", "-y"), env=env)
    rm = _run(_pulumi("stack", "rm", stack, "--yes"), env=env, check=False)
    if rm.returncode != 0:
        print(f"Stack {stack} could not be removed; remove it with: pulumi stack rm {stack}", file=sys.stderr)
    print(f"Archive '{name}' removed. The bucket and its objects were retained; delete them by hand if intended.")


# --- verify ---


def _cmd_verify(name: str) -> None:
    from archive_infra.preflight import run_preflight

    config = _require_config()
    _require_project()
    outputs = _stack_outputs(name, config)
    role_arn = outputs.get("upload_role_arn")
    if not role_arn:
        print(f"Stack for archive '{name}' has no upload_role_arn output.", file=sys.stderr)
        sys.exit(1)
    sys.exit(run_preflight(role_arn, outputs.get("backup_user_name"), region=config["region"]))


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(
        description="Manage archive-infra stacks (deploy, outputs, destroy). Run 'archive setup' first."
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("setup", help="One-time setup: AWS, state storage, region")
    sub.add_parser("list", help="List archive-infra managed resources by stack")
    deploy_p = sub.add_parser("deploy", help="Provision an archive from archive.yaml")
    deploy_p.add_argument("archive_yaml", help="Path to archive.yaml (file or fixture)")
    preview_p = sub.add_parser("preview", help="Show what deploy would change, without deploying")
    preview_p.add_argument("archive_yaml", help="Path to archive.yaml (file or fixture)")
    outputs_p = sub.add_parser("outputs", help="Print backup client settings (.env lines)")
    outputs_p.add_argument("name", help="Archive name (from archive.yaml metadata.name)")
    destroy_p = sub.add_parser("destroy", help="Remove the archive's IAM user and role; the bucket is kept")
    destroy_p.add_argument("name", help="Archive name (from archive.yaml metadata.name)")
    verify_p = sub.add_parser("verify", help="Check the backup user can assume the upload role")
    verify_p.add_argument("name", help="Archive name (from archive.yaml metadata.name)")
    args = parser.parse_args()

    if args.command == "setup":
        _cmd_setup()
    elif args.command == "list":
        _cmd_list()
    elif args.command == "deploy":
        _cmd_deploy(args.archive_yaml)
    elif args.command == "preview":
        _cmd_preview(args.archive_yaml)
    elif args.command == "outputs":
        _cmd_outputs(args.name)
    elif args.command == "destroy":
        _cmd_destroy(args.name)
    elif args.command == "verify":
        _cmd_verify(args.name)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
