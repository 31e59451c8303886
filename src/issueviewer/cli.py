"""One-shot command-line client for the issueviewer tools.

Runs the same registry the MCP server exposes, in-process, and prints the
envelope text.  Exit status is 1 whenever the tool reports an error.

Usage:
    issueviewer tools                                # List available tools
    issueviewer issues octocat hello-world           # Open issues (first 5)
    issueviewer issue octocat hello-world 42         # One issue in detail
    issueviewer plan alice "1/1/2025...1/31/2025"    # Resource plan hours
"""

from __future__ import annotations

import asyncio
import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click
import httpx
from mcp.types import CallToolResult, TextContent

from issueviewer import __version__
from issueviewer.config import Settings, load_env_file
from issueviewer.mcp_tools import build_registry


def _settings(ctx: click.Context) -> Settings:
    try:
        return Settings.from_env()
    except ValueError as e:
        raise click.UsageError(str(e), ctx=ctx) from None


async def _dispatch(settings: Settings, transport: httpx.AsyncBaseTransport | None, name: str, arguments: dict[str, Any]) -> CallToolResult:
    async with httpx.AsyncClient(timeout=settings.http_timeout, transport=transport) as client:
        return await build_registry(settings, client).dispatch(name, arguments)


def _run_tool(ctx: click.Context, name: str, arguments: dict[str, Any], as_json: bool) -> None:
    settings = _settings(ctx)
    result = asyncio.run(_dispatch(settings, ctx.obj.get("transport"), name, arguments))
    text = "\n".join(block.text for block in result.content if isinstance(block, TextContent))

    if as_json:
        click.echo(json_mod.dumps({"text": text, "is_error": result.isError}, indent=2))
    elif result.isError:
        click.echo(text, err=True)
    else:
        click.echo(text)

    if result.isError:
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="issueviewer")
@click.option("--env-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="dotenv file to load first")
@click.pass_context
def cli(ctx: click.Context, env_file: Path | None) -> None:
    """Query GitHub issues and resource plans through the issueviewer tools."""
    ctx.ensure_object(dict)
    load_env_file(env_file)


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """List the available tools."""

    async def _list() -> list[tuple[str, str]]:
        async with httpx.AsyncClient(transport=ctx.obj.get("transport")) as client:
            return [(t.name, t.description or "") for t in build_registry(_settings(ctx), client).tools()]

    for name, description in asyncio.run(_list()):
        click.echo(f"{name:<20} {description}")


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def issues(ctx: click.Context, owner: str, repo: str, as_json: bool) -> None:
    """List open issues for OWNER/REPO."""
    _run_tool(ctx, "list_open_issues", {"owner": owner, "repo": repo}, as_json)


@cli.command()
@click.argument("owner")
@click.argument("repo")
@click.argument("issue_number", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def issue(ctx: click.Context, owner: str, repo: str, issue_number: int, as_json: bool) -> None:
    """Show one issue of OWNER/REPO in detail."""
    _run_tool(ctx, "get_issue_details", {"owner": owner, "repo": repo, "issue_number": issue_number}, as_json)


@cli.command()
@click.argument("user_name")
@click.argument("date_range")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def plan(ctx: click.Context, user_name: str, date_range: str, as_json: bool) -> None:
    """Show planned, actual and remaining hours for USER_NAME over DATE_RANGE."""
    _run_tool(ctx, "get_resource_plan", {"user_name": user_name, "date_range": date_range}, as_json)


def main() -> None:
    """Entry point for the ``issueviewer`` console script."""
    cli()


if __name__ == "__main__":
    main()
