"""Read-only access to the public GitHub issues API.

Each operation issues exactly one GET and converts whatever comes back
(payload, non-2xx, transport fault) into a :data:`ToolOutcome`.  Nothing
raised by httpx escapes this module.
"""

from __future__ import annotations

import logging
from typing import Any, cast

import httpx

from issueviewer.outcome import MALFORMED_RESPONSE, TRANSPORT_ERROR, UPSTREAM_STATUS, Failure, Success, ToolOutcome
from issueviewer.types.github import IssueRecord

logger = logging.getLogger(__name__)

# Listing output is capped so a busy repository stays readable.
MAX_LISTED_ISSUES = 5
NO_DESCRIPTION = "No description provided."


def format_issue_list(owner: str, repo: str, issues: list[IssueRecord]) -> str:
    if not issues:
        return f"No open issues found for {owner}/{repo}."
    shown = issues[:MAX_LISTED_ISSUES]
    lines = [f"#{issue['number']}: {issue['title']} (by {issue['user']['login']})" for issue in shown]
    header = f"Found {len(issues)} open issues in {owner}/{repo}."
    if len(issues) > len(shown):
        header += f" Showing the first {len(shown)}:"
    return header + "\n\n" + "\n".join(lines)


def format_issue_details(issue: IssueRecord) -> str:
    body = issue.get("body") or NO_DESCRIPTION
    return (
        f"Issue #{issue['number']}: {issue['title']}\n"
        f"Author: {issue['user']['login']}\n"
        f"URL: {issue['html_url']}\n"
        f"\n{body}"
    )


def _is_issue(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    user = value.get("user")
    return (
        isinstance(value.get("number"), int)
        and isinstance(value.get("title"), str)
        and isinstance(value.get("html_url"), str)
        and isinstance(user, dict)
        and isinstance(user.get("login"), str)
    )


class GitHubIssues:
    """Issue listing and detail lookups against one GitHub API base URL."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, user_agent: str) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": user_agent, "Accept": "application/vnd.github+json"}

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> tuple[Any, Failure | None]:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params, headers=self.headers)
        except httpx.HTTPError as exc:
            logger.warning("GitHub request failed: %s %s", url, exc)
            return (None, Failure(f"Failed to reach GitHub API: {exc}", TRANSPORT_ERROR))
        if not response.is_success:
            return (None, Failure(f"GitHub API error: HTTP {response.status_code}", UPSTREAM_STATUS))
        try:
            return (response.json(), None)
        except ValueError:
            return (None, Failure("GitHub API returned invalid JSON", MALFORMED_RESPONSE))

    async def list_open_issues(self, owner: str, repo: str) -> ToolOutcome:
        payload, err = await self._get_json(f"/repos/{owner}/{repo}/issues", params={"state": "open"})
        if err:
            return err
        if not isinstance(payload, list) or not all(_is_issue(item) for item in payload):
            return Failure("GitHub API returned an unexpected issue list", MALFORMED_RESPONSE)
        return Success(format_issue_list(owner, repo, cast(list[IssueRecord], payload)))

    async def get_issue_details(self, owner: str, repo: str, issue_number: int) -> ToolOutcome:
        payload, err = await self._get_json(f"/repos/{owner}/{repo}/issues/{issue_number}")
        if err:
            return err
        if not _is_issue(payload):
            return Failure("GitHub API returned an unexpected issue payload", MALFORMED_RESPONSE)
        return Success(format_issue_details(cast(IssueRecord, payload)))
