"""IAM user backing the offline backup client's long-term credentials."""

import pulumi
import pulumi_aws

from archive_infra.iam.policies import assume_role_policy, render


def create_backup_user(
    stack_name: str,
    user_name: str,
    aws_provider: pulumi_aws.Provider,
) -> pulumi_aws.iam.User:
    """Create the backup user. It gets no permissions here.

    Access keys are issued by hand after deploy and never pass through state.
    """
    return pulumi_aws.iam.User(
        f"{stack_name}_backup_user",
        name=user_name,
        tags={"stack": stack_name},
        opts=pulumi.ResourceOptions(provider=aws_provider),
    )


def allow_assume_role(
    stack_name: str,
    user: pulumi_aws.iam.User,
    role_arn: pulumi.Input[str],
    aws_provider: pulumi_aws.Provider,
) -> pulumi_aws.iam.UserPolicy:
    """Attach the user's only inline policy: sts:AssumeRole on one role."""
    policy_doc = pulumi.Output.from_input(role_arn).apply(
        lambda arn: render(assume_role_policy(arn))
    )
    return pulumi_aws.iam.UserPolicy(
        f"{stack_name}_backup_user_assume_policy",
        user=user.name,
        policy=policy_doc,
        opts=pulumi.ResourceOptions(provider=aws_provider),
    )
