"""TypedDicts for the GitHub issues API fields the formatters consume.

Only the keys read by ``issueviewer.github`` are declared; the upstream
payload carries many more and they pass through untouched.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class IssueUser(TypedDict):
    login: str


class IssueRecord(TypedDict):
    """One element of ``GET /repos/{owner}/{repo}/issues``."""

    number: int
    title: str
    user: IssueUser
    html_url: str
    body: NotRequired[str | None]
