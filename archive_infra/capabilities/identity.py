"""Identity capabilities: the backup user and the upload role it assumes."""

from typing import Any

import pulumi

from archive_infra.capabilities.context import (
    BACKUP_USER,
    BACKUP_USER_ARN,
    UPLOAD_ROLE,
    UPLOAD_ROLE_ARN,
    CapabilityContext,
)
from archive_infra.capabilities.registry import Phase, register


@register("backupUser", phase=Phase.IDENTITY)
def backup_user_handler(
    section_config: dict[str, Any],
    ctx: CapabilityContext,
) -> None:
    """Create the backup user with no permissions of its own yet."""
    from archive_infra.iam.users import create_backup_user

    user = create_backup_user(
        stack_name=ctx.config.stack_name,
        user_name=ctx.config.backup_user.name,
        aws_provider=ctx.aws_provider,
    )
    ctx.set(BACKUP_USER, user)
    ctx.set(BACKUP_USER_ARN, user.arn)
    ctx.export("backup_user_name", user.name)


@register("uploadRole", phase=Phase.ACCESS, requires=["bucket", "backupUser"])
def upload_role_handler(
    section_config: dict[str, Any],
    ctx: CapabilityContext,
) -> None:
    """Create the put-only upload role and let the backup user assume it.

    The backup user ends up with exactly one permission: sts:AssumeRole on this role.
    """
    from archive_infra.iam.roles import create_upload_role
    from archive_infra.iam.users import allow_assume_role

    stack_name = ctx.config.stack_name
    role_cfg = ctx.config.upload_role

    role = create_upload_role(
        stack_name=stack_name,
        trusted_user_arn=ctx.backup_user_arn,
        bucket_arn=ctx.bucket_arn,
        aws_provider=ctx.aws_provider,
        role_name=role_cfg.name,
        description=role_cfg.description,
        max_session_duration=role_cfg.max_session_duration,
    )
    allow_assume_role(stack_name, ctx.backup_user, role.arn, ctx.aws_provider)

    ctx.set(UPLOAD_ROLE, role)
    ctx.set(UPLOAD_ROLE_ARN, role.arn)
    ctx.export("upload_role_arn", role.arn)
    pulumi.log.info(f"Upload role trusts only backup user '{ctx.config.backup_user.name}'")
