"""
Archive stack: provisions one write-once backup archive from archive.yaml.
Creates an S3 bucket that moves every object to cold storage on arrival, an IAM
user for the offline backup client, and a put-only role only that user may assume.
"""
import pulumi

from archive_infra.capabilities import run_capabilities
from archive_infra.capabilities.context import CapabilityContext
from archive_infra.config import create_aws_provider, load_archive_config
from archive_infra.shared.lookups import lookup_account_context


def main() -> CapabilityContext:
    config = load_archive_config()
    aws_provider = create_aws_provider(config.stack_name, config.region, config.tags)
    account = lookup_account_context(aws_provider)

    ctx = CapabilityContext(config=config, account=account, aws_provider=aws_provider)
    run_capabilities(ctx)

    pulumi.export("account_id", account.account_id)
    for key, value in ctx.exports.items():
        pulumi.export(key, value)
    return ctx


if __name__ == "__main__":
    main()
