"""Tool definitions grouped by backend, plus the registry that holds them all."""

from __future__ import annotations

import httpx

from issueviewer.config import Settings
from issueviewer.github import GitHubIssues
from issueviewer.mcp_tools import issues, planning
from issueviewer.recorddb import RecordDbBroker
from issueviewer.registry import ToolRegistry


def build_registry(settings: Settings, client: httpx.AsyncClient) -> ToolRegistry:
    """Register every tool against one shared HTTP client."""
    registry = ToolRegistry()
    descriptors = [
        *issues.register(GitHubIssues(client, settings.github_api_url, settings.user_agent)),
        *planning.register(RecordDbBroker(settings.recorddb, client)),
    ]
    for descriptor in descriptors:
        registry.register(descriptor)
    return registry
