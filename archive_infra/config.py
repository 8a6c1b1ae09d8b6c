"""archive.yaml configuration loading and validation."""

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import jsonschema
import pulumi
import pulumi_aws
import yaml

from archive_infra.spec.validator import validate_archive_spec

DEFAULT_ARCHIVE_RULE_ID = "ImmediateDeepArchive"
DEFAULT_ROLE_DESCRIPTION = "Allows uploading objects to the photo backup bucket"
MANAGED_BY = "archive-infra"


@dataclass
class BucketConfig:
    # None means {account_id}-{stack_name}, resolved at deploy time.
    name: str | None = None
    transition_after_days: int = 0
    lifecycle_rule_id: str = DEFAULT_ARCHIVE_RULE_ID


@dataclass
class BackupUserConfig:
    name: str


@dataclass
class UploadRoleConfig:
    name: str | None = None
    description: str = DEFAULT_ROLE_DESCRIPTION
    max_session_duration: int = 3600


@dataclass
class ArchiveConfig:
    """Parsed and validated archive.yaml configuration."""

    stack_name: str
    region: str
    raw_spec: dict[str, Any]
    bucket: BucketConfig
    backup_user: BackupUserConfig
    upload_role: UploadRoleConfig
    description: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def spec_sections(self) -> dict[str, Any]:
        """Return declared (non-None) spec section names and their raw config."""
        sections = ["bucket", "backupUser", "uploadRole"]
        return {
            k: self.raw_spec[k]
            for k in sections
            if k in self.raw_spec and self.raw_spec[k] is not None
        }

    @classmethod
    def from_file(cls, path: str) -> "ArchiveConfig":
        """Load and validate archive.yaml from file path."""
        if not Path(path).exists():
            raise SystemExit(f"archive.yaml not found: {path}")

        with open(path, encoding="utf-8") as f:
            document: dict[str, Any] = yaml.safe_load(f)

        if not isinstance(document, dict):
            raise SystemExit(f"archive.yaml must contain a mapping: {path}")

        try:
            validate_archive_spec(document)
        except jsonschema.ValidationError as e:
            raise SystemExit(str(e)) from e

        metadata = document["metadata"]
        spec = document["spec"]
        aws_config = pulumi.Config("aws")
        region = aws_config.require("region")

        b = spec["bucket"] or {}
        archive = b.get("archive") or {}
        bucket = BucketConfig(
            name=b.get("name"),
            transition_after_days=archive.get("transitionAfterDays", 0),
            lifecycle_rule_id=archive.get("ruleId", DEFAULT_ARCHIVE_RULE_ID),
        )

        backup_user = BackupUserConfig(name=spec["backupUser"]["name"])

        r = spec["uploadRole"] or {}
        upload_role = UploadRoleConfig(
            name=r.get("name"),
            description=r.get("description", DEFAULT_ROLE_DESCRIPTION),
            max_session_duration=r.get("maxSessionDuration", 3600),
        )

        return cls(
            stack_name=metadata["name"],
            region=region,
            raw_spec=spec,
            bucket=bucket,
            backup_user=backup_user,
            upload_role=upload_role,
            description=metadata.get("description", ""),
            tags=metadata.get("tags") or {},
        )


def load_archive_config() -> ArchiveConfig:
    """Load archive.yaml from ARCHIVE_YAML_PATH environment variable."""
    path = os.environ.get("ARCHIVE_YAML_PATH")
    if not path:
        raise SystemExit("ARCHIVE_YAML_PATH environment variable required")
    if not Path(path).exists():
        raise SystemExit("ARCHIVE_YAML_PATH must point to archive.yaml")
    return ArchiveConfig.from_file(path)


def create_aws_provider(
    stack_name: str,
    region: str,
    tags: dict[str, str] | None = None,
) -> pulumi_aws.Provider:
    """Create AWS provider with default resource tags."""
    default_tags = {
        **(tags or {}),
        "stack": stack_name,
        "managed-by": MANAGED_BY,
    }
    return pulumi_aws.Provider(
        "aws-tagged",
        region=region,
        default_tags=pulumi_aws.ProviderDefaultTagsArgs(tags=default_tags),
    )
