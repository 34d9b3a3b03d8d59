"""Shared fixtures for livecache tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from structlog.testing import capture_logs


@pytest.fixture(autouse=True)
def captured_logs() -> Iterator[list[dict[str, Any]]]:
    """Capture structlog output instead of printing it."""
    with capture_logs() as logs:
        yield logs
