"""Archive S3 bucket: encrypted, versioned, private, TLS-only, cold from day zero."""

import pulumi
import pulumi_aws

from archive_infra.iam.policies import render, tls_only_bucket_policy

# Coldest tier; not configurable.
ARCHIVE_STORAGE_CLASS = "DEEP_ARCHIVE"


def create_archive_bucket(
    stack_name: str,
    bucket_name: str,
    aws_provider: pulumi_aws.Provider,
    transition_after_days: int = 0,
    lifecycle_rule_id: str = "ImmediateDeepArchive",
) -> pulumi_aws.s3.BucketV2:
    """Create the archive bucket and its encryption, public access block,
    versioning, lifecycle and TLS-only policy.

    bucket_name is the final, globally unique name. The bucket and every piece
    of its configuration survive `pulumi destroy`.
    """
    safe_name = bucket_name.replace("-", "_").replace(".", "_")
    opts = pulumi.ResourceOptions(provider=aws_provider, retain_on_delete=True)

    bucket = pulumi_aws.s3.BucketV2(
        f"{safe_name}_bucket",
        bucket=bucket_name,
        force_destroy=False,
        tags={"Name": bucket_name, "stack": stack_name},
        opts=opts,
    )

    pulumi_aws.s3.BucketServerSideEncryptionConfigurationV2(
        f"{safe_name}_encryption",
        bucket=bucket.id,
        rules=[
            pulumi_aws.s3.BucketServerSideEncryptionConfigurationV2RuleArgs(
                apply_server_side_encryption_by_default=pulumi_aws.s3.BucketServerSideEncryptionConfigurationV2RuleApplyServerSideEncryptionByDefaultArgs(
                    sse_algorithm="AES256",
                ),
            )
        ],
        opts=opts,
    )

    public_access = pulumi_aws.s3.BucketPublicAccessBlock(
        f"{safe_name}_public_access",
        bucket=bucket.id,
        block_public_acls=True,
        block_public_policy=True,
        ignore_public_acls=True,
        restrict_public_buckets=True,
        opts=opts,
    )

    pulumi_aws.s3.BucketVersioningV2(
        f"{safe_name}_versioning",
        bucket=bucket.id,
        versioning_configuration=pulumi_aws.s3.BucketVersioningV2VersioningConfigurationArgs(
            status="Enabled",
        ),
        opts=opts,
    )

    # Empty prefix: the rule covers every object, whatever its key or size.
    pulumi_aws.s3.BucketLifecycleConfigurationV2(
        f"{safe_name}_lifecycle",
        bucket=bucket.id,
        rules=[
            pulumi_aws.s3.BucketLifecycleConfigurationV2RuleArgs(
                id=lifecycle_rule_id,
                status="Enabled",
                filter=pulumi_aws.s3.BucketLifecycleConfigurationV2RuleFilterArgs(
                    prefix="",
                ),
                transitions=[
                    pulumi_aws.s3.BucketLifecycleConfigurationV2RuleTransitionArgs(
                        days=transition_after_days,
                        storage_class=ARCHIVE_STORAGE_CLASS,
                    )
                ],
            )
        ],
        opts=opts,
    )

    pulumi_aws.s3.BucketPolicy(
        f"{safe_name}_tls_policy",
        bucket=bucket.id,
        policy=bucket.arn.apply(lambda arn: render(tls_only_bucket_policy(arn))),
        opts=pulumi.ResourceOptions(
            provider=aws_provider,
            retain_on_delete=True,
            depends_on=[public_access],
        ),
    )

    if transition_after_days == 0:
        pulumi.log.info(
            f"Bucket '{bucket_name}': objects move to {ARCHIVE_STORAGE_CLASS} on upload; reads need a restore first"
        )

    return bucket
