"""Lookup the account, partition and region the stack deploys into."""

from dataclasses import dataclass

import pulumi
import pulumi_aws


@dataclass
class AccountContext:
    """Deploy-time identity of the target AWS account."""

    account_id: str
    partition: str
    region: str


def lookup_account_context(
    aws_provider: pulumi_aws.Provider,
) -> AccountContext:
    """Lookup caller identity, partition and region.

    Does not create any resources.
    """
    opts = pulumi.InvokeOptions(provider=aws_provider)
    identity = pulumi_aws.get_caller_identity(opts=opts)
    partition = pulumi_aws.get_partition(opts=opts)
    region = pulumi_aws.get_region(opts=opts)

    return AccountContext(
        account_id=identity.account_id,
        partition=partition.partition,
        region=region.name,
    )
