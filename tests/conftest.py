"""Common pytest configuration."""

from __future__ import annotations

import shutil

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "git: tests that shell out to a real git executable.",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip git tests when no git executable is available."""
    if shutil.which("git") is not None:
        return
    skip_marker = pytest.mark.skip(reason="git executable not found on PATH")
    for item in items:
        if "git" in item.keywords:
            item.add_marker(skip_marker)
