"""Bucket capability: the write-once archive bucket."""

from typing import Any

from archive_infra.capabilities.context import BUCKET, BUCKET_ARN, BUCKET_NAME, CapabilityContext
from archive_infra.capabilities.registry import Phase, register


def resolve_bucket_name(ctx: CapabilityContext) -> str:
    """Explicit name from archive.yaml, else {account_id}-{stack_name}.

    The prefixed default keeps the name globally unique across accounts.
    """
    explicit = ctx.config.bucket.name
    if explicit:
        return explicit
    return f"{ctx.account.account_id}-{ctx.config.stack_name}"


@register("bucket", phase=Phase.STORAGE)
def bucket_handler(
    section_config: dict[str, Any],
    ctx: CapabilityContext,
) -> None:
    """Provision the archive bucket and publish its name and ARN."""
    from archive_infra.storage.s3 import create_archive_bucket

    bucket_cfg = ctx.config.bucket
    bucket_name = resolve_bucket_name(ctx)

    bucket = create_archive_bucket(
        stack_name=ctx.config.stack_name,
        bucket_name=bucket_name,
        aws_provider=ctx.aws_provider,
        transition_after_days=bucket_cfg.transition_after_days,
        lifecycle_rule_id=bucket_cfg.lifecycle_rule_id,
    )

    ctx.set(BUCKET, bucket)
    ctx.set(BUCKET_ARN, bucket.arn)
    ctx.set(BUCKET_NAME, bucket.bucket)
    ctx.export("bucket_name", bucket.bucket)
