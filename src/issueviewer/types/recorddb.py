"""TypedDicts for the record-database Data API replies.

The Data API wraps every payload as ``{"response": {...}, "messages": [...]}``.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class DataApiMessage(TypedDict):
    code: str
    message: str


class SessionBody(TypedDict):
    token: str


class SessionResponse(TypedDict):
    """Reply to ``POST /databases/{db}/sessions``."""

    response: SessionBody
    messages: NotRequired[list[DataApiMessage]]


class PlanFieldData(TypedDict, total=False):
    """Resource-plan columns; any of them may be missing or blank."""

    UserName: str
    DateRange: str
    HoursPlanned: float | str | None
    HoursActual: float | str | None
    HoursRemaining: float | str | None


class PlanRecord(TypedDict):
    fieldData: PlanFieldData
    recordId: NotRequired[str]
