"""Shared fixtures: resolve Pulumi outputs eagerly so policy JSON can be asserted."""

from collections.abc import Iterator
from unittest.mock import patch

import pytest

from tests.helpers import resolve


@pytest.fixture
def eager_outputs() -> Iterator[None]:
    """Patch pulumi.Output.from_input so .apply() callbacks run with plain values."""
    with patch("pulumi.Output.from_input", side_effect=resolve):
        yield
