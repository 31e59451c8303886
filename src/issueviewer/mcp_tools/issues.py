"""MCP tools backed by the public GitHub issues API."""

from __future__ import annotations

from typing import Any

from issueviewer.github import GitHubIssues
from issueviewer.outcome import ToolOutcome
from issueviewer.registry import ToolDescriptor
from issueviewer.validation import FieldSpec

_REPO_SCHEMA = {
    "owner": FieldSpec("string", "Repository owner (user or organization)", non_empty=True),
    "repo": FieldSpec("string", "Repository name", non_empty=True),
}


def register(issues: GitHubIssues) -> list[ToolDescriptor]:
    """Return the issue-domain tool descriptors bound to *issues*."""

    async def _handle_list_open_issues(arguments: dict[str, Any]) -> ToolOutcome:
        return await issues.list_open_issues(arguments["owner"], arguments["repo"])

    async def _handle_get_issue_details(arguments: dict[str, Any]) -> ToolOutcome:
        return await issues.get_issue_details(arguments["owner"], arguments["repo"], arguments["issue_number"])

    return [
        ToolDescriptor(
            name="list_open_issues",
            description="List open issues for a GitHub repository (first 5 shown, with the total count).",
            schema=_REPO_SCHEMA,
            handler=_handle_list_open_issues,
        ),
        ToolDescriptor(
            name="get_issue_details",
            description="Get the title, author, URL and body of one GitHub issue.",
            schema={
                **_REPO_SCHEMA,
                "issue_number": FieldSpec("integer", "Issue number", minimum=1),
            },
            handler=_handle_get_issue_details,
        ),
    ]
