"""Shared pytest fixtures for issueviewer tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
from click.testing import CliRunner

from issueviewer.config import RecordDbConfig, Settings
from issueviewer.mcp_tools import build_registry
from issueviewer.registry import ToolRegistry
from tests._fakes import GITHUB_URL, FakeUpstream


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def client(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as c:
        yield c


@pytest.fixture
def recorddb_config() -> RecordDbConfig:
    return RecordDbConfig(
        host="fm.example.test",
        database="plans",
        layout="ResourcePlan",
        username="api",
        password="secret",
    )


@pytest.fixture
def settings(recorddb_config: RecordDbConfig) -> Settings:
    return Settings(github_api_url=GITHUB_URL, user_agent="issueviewer-tests", recorddb=recorddb_config)


@pytest.fixture
def registry(settings: Settings, client: httpx.AsyncClient) -> ToolRegistry:
    return build_registry(settings, client)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
