"""Capability registry: phase ordering, handler registration, and execution."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

import pulumi

from archive_infra.capabilities.context import CapabilityContext


class Phase(IntEnum):
    """Execution phase order for capabilities (lower runs first)."""

    IDENTITY = 0
    STORAGE = 1
    ACCESS = 2


class CapabilityHandler(Protocol):
    """Protocol for capability handler functions."""

    def __call__(self, section_config: dict[str, Any], ctx: CapabilityContext) -> None:
        ...


@dataclass
class CapabilityDef:
    """Registered capability: handler, phase, and optional dependencies."""

    handler: Callable[[dict[str, Any], CapabilityContext], None]
    phase: Phase
    requires: list[str]


CAPABILITIES: dict[str, CapabilityDef] = {}


def register(
    name: str,
    phase: Phase,
    requires: list[str] | None = None,
) -> Callable[[CapabilityHandler], CapabilityHandler]:
    """Decorator to register a capability handler in CAPABILITIES."""

    def decorator(fn: CapabilityHandler) -> CapabilityHandler:
        CAPABILITIES[name] = CapabilityDef(
            handler=fn,
            phase=phase,
            requires=requires or [],
        )
        return fn

    return decorator


def run_capabilities(ctx: CapabilityContext) -> list[str]:
    """Run handlers for every declared spec section, lowest phase first.

    Ties within a phase keep the section order from archive.yaml.
    Returns the names that ran, in order.
    """
    sections = ctx.config.spec_sections
    unknown = [name for name in sections if name not in CAPABILITIES]
    if unknown:
        raise SystemExit(f"No capability registered for section(s): {', '.join(unknown)}")

    for name in sections:
        missing = [dep for dep in CAPABILITIES[name].requires if dep not in sections]
        if missing:
            raise SystemExit(f"Section '{name}' requires undeclared section(s): {', '.join(missing)}")

    order = sorted(sections, key=lambda name: CAPABILITIES[name].phase)
    for name in order:
        pulumi.log.info(f"Provisioning {name} ({CAPABILITIES[name].phase.name.lower()})")
        CAPABILITIES[name].handler(sections[name], ctx)
    return order
