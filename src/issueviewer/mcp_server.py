"""MCP server for the GitHub issue viewer and resource-plan tools.

Exposes the tool registry over stdio.  Every call goes through
:meth:`ToolRegistry.invoke` and is answered with a ``CallToolResult``
whose ``isError`` flag tells success from failure.

Usage:
    issueviewer-mcp                          # Read settings from the environment
    issueviewer-mcp --env-file ./.env        # Prime the environment from a dotenv file
    issueviewer-mcp --log-file server.log    # JSON log lines to a file instead of stderr
"""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool

from issueviewer import __version__
from issueviewer.config import Settings, load_env_file
from issueviewer.mcp_tools import build_registry
from issueviewer.outcome import Failure, to_envelope
from issueviewer.registry import ToolRegistry

SERVER_NAME = "github-issue-viewer"

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

server = Server(SERVER_NAME, version=__version__)
registry: ToolRegistry | None = None
_logger: logging.Logger | None = None


def _get_registry() -> ToolRegistry:
    if registry is None:
        msg = "Tool registry not initialized"
        raise RuntimeError(msg)
    return registry


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return _get_registry().tools()


# ---------------------------------------------------------------------------
# Tool dispatch
# ---------------------------------------------------------------------------


# Arguments are validated by the registry, not the SDK.
@server.call_tool(validate_input=False)  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any] | None) -> CallToolResult:
    active = _get_registry()
    t0 = time.monotonic()

    try:
        outcome = await active.invoke(name, arguments)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            extra: dict[str, Any] = {"tool": name, "args_data": arguments, "duration_ms": duration_ms}
            if isinstance(outcome, Failure):
                extra.update(is_error=True, code=outcome.code, error=outcome.message)
            else:
                extra["is_error"] = False
            _logger.info("tool_call", extra=extra)
        return to_envelope(outcome)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(settings: Settings, log_file: Path | None) -> None:
    global registry, _logger

    from issueviewer.logging import setup_logging

    _logger = setup_logging(log_file)
    _logger.info(
        "mcp_server_start",
        extra={
            "tool": "server",
            "args_data": {
                "github_api_url": settings.github_api_url,
                "recorddb_host": settings.recorddb.host,
                "recorddb_credentials": settings.recorddb.has_credentials,
            },
        },
    )

    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        registry = build_registry(settings, client)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            registry = None


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="GitHub issue viewer MCP server")
    parser.add_argument("--env-file", type=Path, default=None, help="dotenv file to load before reading settings")
    parser.add_argument("--log-file", type=Path, default=None, help="Write JSON logs here instead of stderr")
    args = parser.parse_args()

    load_env_file(args.env_file)
    try:
        settings = Settings.from_env()
    except ValueError as e:
        parser.error(str(e))

    asyncio.run(_run(settings, args.log_file))


if __name__ == "__main__":
    main()
