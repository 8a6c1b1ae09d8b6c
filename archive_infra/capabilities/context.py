"""Shared state for capability handlers: what earlier phases created, and the stack exports."""

from dataclasses import dataclass, field
from typing import Any

import pulumi
import pulumi_aws

from archive_infra.config import ArchiveConfig
from archive_infra.shared.lookups import AccountContext

# Keys written by the bucket and backupUser handlers and read by uploadRole.
BUCKET = "s3.bucket"
BUCKET_ARN = "s3.bucket_arn"
BUCKET_NAME = "s3.bucket_name"
BACKUP_USER = "iam.backup_user"
BACKUP_USER_ARN = "iam.backup_user_arn"
UPLOAD_ROLE = "iam.upload_role"
UPLOAD_ROLE_ARN = "iam.upload_role_arn"


@dataclass
class CapabilityContext:
    """Passed to every handler. Values set by one phase are read by later ones."""

    config: ArchiveConfig
    account: AccountContext
    aws_provider: pulumi_aws.Provider
    _values: dict[str, Any] = field(default_factory=dict)
    _exports: dict[str, Any] = field(default_factory=dict)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def require(self, key: str) -> Any:
        """Return a value an earlier phase set; RuntimeError naming what is available otherwise."""
        if key not in self._values:
            available = ", ".join(sorted(self._values)) or "(none)"
            raise RuntimeError(f"missing required key: {key!r}. Available keys: {available}")
        return self._values[key]

    @property
    def bucket_arn(self) -> pulumi.Input[str]:
        return self.require(BUCKET_ARN)

    @property
    def backup_user(self) -> pulumi_aws.iam.User:
        return self.require(BACKUP_USER)

    @property
    def backup_user_arn(self) -> pulumi.Input[str]:
        return self.require(BACKUP_USER_ARN)

    def export(self, key: str, value: Any) -> None:
        """Queue a stack output; __main__ passes these to pulumi.export."""
        self._exports[key] = value

    @property
    def exports(self) -> dict[str, Any]:
        return dict(self._exports)
