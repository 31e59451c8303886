# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""Typed projections of the upstream JSON payloads the tools read."""

from __future__ import annotations

from issueviewer.types.github import IssueRecord, IssueUser
from issueviewer.types.recorddb import DataApiMessage, PlanFieldData, PlanRecord, SessionResponse

__all__ = [
    "DataApiMessage",
    "IssueRecord",
    "IssueUser",
    "PlanFieldData",
    "PlanRecord",
    "SessionResponse",
]
