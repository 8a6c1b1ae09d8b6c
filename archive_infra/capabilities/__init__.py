"""Capability modules: each provisions one slice of the archive stack (bucket, user, role)."""

from archive_infra.capabilities import identity, storage  # noqa: F401 - register handlers
from archive_infra.capabilities.registry import run_capabilities

__all__ = ["run_capabilities"]
