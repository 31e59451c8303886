"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from issueviewer.registry import ToolRegistry


@pytest.fixture
def mcp_registry(registry: ToolRegistry) -> Generator[ToolRegistry, None, None]:
    """Install a registry on the MCP module globals for the duration of a test."""
    import issueviewer.mcp_server as mcp_mod

    original = mcp_mod.registry
    mcp_mod.registry = registry

    yield registry

    mcp_mod.registry = original
