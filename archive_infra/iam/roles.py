"""IAM role holding the archive's only write permission."""

import pulumi
import pulumi_aws

from archive_infra.iam.policies import render, trust_policy, upload_objects_policy


def create_upload_role(
    stack_name: str,
    trusted_user_arn: pulumi.Input[str],
    bucket_arn: pulumi.Input[str],
    aws_provider: pulumi_aws.Provider,
    role_name: str | None = None,
    description: str = "Allows uploading objects to the photo backup bucket",
    max_session_duration: int = 3600,
) -> pulumi_aws.iam.Role:
    """Create the upload role: assumable only by the backup user, put-only on the bucket.

    role_name None lets Pulumi auto-name the role from the logical name.
    """
    assume_policy = pulumi.Output.from_input(trusted_user_arn).apply(
        lambda arn: render(trust_policy(arn))
    )

    role = pulumi_aws.iam.Role(
        f"{stack_name}_upload_role",
        name=role_name,
        description=description,
        assume_role_policy=assume_policy,
        max_session_duration=max_session_duration,
        tags={"stack": stack_name},
        opts=pulumi.ResourceOptions(provider=aws_provider),
    )

    upload_policy = pulumi.Output.from_input(bucket_arn).apply(
        lambda arn: render(upload_objects_policy(arn))
    )
    pulumi_aws.iam.RolePolicy(
        f"{stack_name}_upload_role_put_policy",
        role=role.name,
        policy=upload_policy,
        opts=pulumi.ResourceOptions(provider=aws_provider),
    )

    return role
