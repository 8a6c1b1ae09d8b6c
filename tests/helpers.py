"""Test helpers shared across modules."""

from typing import Any


class Resolved:
    """Stand-in for a resolved pulumi.Output: apply() runs immediately."""

    def __init__(self, value: Any) -> None:
        self.value = value

    def apply(self, fn: Any) -> Any:
        return fn(self.value)


def resolve(value: Any) -> Resolved:
    return value if isinstance(value, Resolved) else Resolved(value)
