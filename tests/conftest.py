"""Pytest configuration for image-merger tests."""

from typing import Any


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "threaded: mark test as pasting with more than one worker thread",
    )
