"""Session broker for the record-database Data API.

The Data API only answers data requests that carry a bearer token obtained
from a login call, and every token counts against the server's session
limit until it is revoked.  :class:`RecordDbBroker` therefore scopes one
token to one operation:

1. refuse to start without credentials (no request made);
2. log in; a failed login returns immediately, there is nothing to release;
3. run the operation once and hold on to its outcome;
4. log out in a ``finally`` block, also when the operation raised;
5. report the operation's outcome, unless it succeeded and the logout did
   not, in which case the caller learns the token may still be live.

The broker keeps no session on ``self``.  Concurrent ``run`` calls each own
their token.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from issueviewer.config import RecordDbConfig
from issueviewer.outcome import (
    AUTHENTICATION_ERROR,
    CONFIGURATION_ERROR,
    MALFORMED_RESPONSE,
    RELEASE_ERROR,
    TRANSPORT_ERROR,
    UPSTREAM_STATUS,
    Failure,
    Success,
    ToolOutcome,
)
from issueviewer.types.recorddb import PlanFieldData, PlanRecord, SessionResponse

logger = logging.getLogger(__name__)

# Layout field names queried and read by the resource-plan tool.
USER_FIELD = "UserName"
RANGE_FIELD = "DateRange"
PLANNED_FIELD = "HoursPlanned"
ACTUAL_FIELD = "HoursActual"
REMAINING_FIELD = "HoursRemaining"

# Data API message code for a _find that matched nothing.
NO_RECORDS_CODE = "401"


@dataclass(frozen=True)
class Session:
    """A live Data API token, valid for the single operation it was acquired for."""

    token: str = field(repr=False)
    acquired_at: datetime
    login_url: str
    logout_url: str


SessionOperation = Callable[[Session], Awaitable[ToolOutcome]]


def _message_code(payload: Any) -> str | None:
    """Return the first Data API message code in *payload*, if any."""
    if not isinstance(payload, dict):
        return None
    messages = payload.get("messages")
    if isinstance(messages, list) and messages and isinstance(messages[0], dict):
        code = messages[0].get("code")
        return str(code) if code is not None else None
    return None


def _hours(value: Any) -> float:
    """Read an hours column; missing, blank, unparseable or non-finite values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    hours = 0.0
    if isinstance(value, int | float):
        hours = float(value)
    elif isinstance(value, str):
        try:
            hours = float(value.strip() or 0)
        except ValueError:
            logger.debug("Non-numeric hours value %r read as 0", value)
    if not math.isfinite(hours):
        logger.debug("Non-finite hours value %r read as 0", value)
        return 0.0
    return hours


def _is_plan_record(record: Any) -> bool:
    if not isinstance(record, dict):
        return False
    data = record.get("fieldData")
    return data is None or isinstance(data, dict)


def format_plan(user_name: str, date_range: str, records: list[PlanRecord]) -> str:
    if not records:
        return f"No resource plan found for {user_name} in {date_range}."
    lines = [f"Resource plan for {user_name} ({date_range}):"]
    for record in records:
        data: PlanFieldData = record.get("fieldData") or {}
        planned = _hours(data.get(PLANNED_FIELD))
        actual = _hours(data.get(ACTUAL_FIELD))
        remaining = _hours(data.get(REMAINING_FIELD))
        lines.append(f"Planned: {planned:g} h | Actual: {actual:g} h | Remaining: {remaining:g} h")
    return "\n".join(lines)


class RecordDbBroker:
    """Acquire, use and release one Data API session per operation."""

    def __init__(self, config: RecordDbConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    @property
    def database_url(self) -> str:
        return f"{self.config.base_url}/databases/{quote(self.config.database, safe='')}"

    # -- session lifecycle -------------------------------------------------

    async def _login(self) -> Session | Failure:
        login_url = f"{self.database_url}/sessions"
        auth = httpx.BasicAuth(self.config.username or "", self.config.password or "")
        try:
            response = await self.client.post(login_url, json={}, auth=auth)
        except httpx.HTTPError as exc:
            logger.warning("Record database login request failed: %s", exc)
            return Failure(f"Failed to reach record database: {exc}", TRANSPORT_ERROR)
        if not response.is_success:
            return Failure(f"Record database authentication failed: HTTP {response.status_code}", AUTHENTICATION_ERROR)
        try:
            payload: SessionResponse = response.json()
            token = payload["response"]["token"]
        except (ValueError, KeyError, TypeError):
            token = None
        if not isinstance(token, str) or not token:
            return Failure("Record database authentication failed: no session token in reply", AUTHENTICATION_ERROR)
        return Session(
            token=token,
            acquired_at=datetime.now(UTC),
            login_url=login_url,
            logout_url=f"{login_url}/{quote(token, safe='')}",
        )

    async def _logout(self, session: Session) -> Failure | None:
        try:
            response = await self.client.delete(session.logout_url)
        except httpx.HTTPError as exc:
            logger.warning("Record database logout request failed: %s", exc)
            return Failure(
                f"Failed to release record database session: {exc}. The session token may not have been revoked.",
                RELEASE_ERROR,
            )
        if not response.is_success:
            logger.warning("Record database logout returned HTTP %s", response.status_code)
            return Failure(
                f"Failed to release record database session: HTTP {response.status_code}. "
                "The session token may not have been revoked.",
                RELEASE_ERROR,
            )
        return None

    async def run(self, operation: SessionOperation) -> ToolOutcome:
        """Run *operation* inside a freshly acquired session and always release it."""
        if not self.config.has_credentials:
            return Failure(
                "Record database credentials are not configured (set FM_USERNAME and FM_PASSWORD)",
                CONFIGURATION_ERROR,
            )

        acquired = await self._login()
        if isinstance(acquired, Failure):
            return acquired

        try:
            outcome = await operation(acquired)
        finally:
            release_err = await self._logout(acquired)

        # An earlier failure is the one reported; _logout has already logged its own.
        if release_err is None or isinstance(outcome, Failure):
            return outcome
        return release_err

    # -- data operations ---------------------------------------------------

    async def find_resource_plan(self, session: Session, user_name: str, date_range: str) -> ToolOutcome:
        url = f"{self.database_url}/layouts/{quote(self.config.layout, safe='')}/_find"
        body = {"query": [{USER_FIELD: f"={user_name}", RANGE_FIELD: f"={date_range}"}]}
        headers = {"Authorization": f"Bearer {session.token}"}
        try:
            response = await self.client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Record database find request failed: %s", exc)
            return Failure(f"Failed to reach record database: {exc}", TRANSPORT_ERROR)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        # The Data API answers an empty _find with an error status and code 401.
        if _message_code(payload) == NO_RECORDS_CODE:
            return Success(format_plan(user_name, date_range, []))
        if not response.is_success:
            return Failure(f"Record database query failed: HTTP {response.status_code}", UPSTREAM_STATUS)
        if payload is None:
            return Failure("Record database returned invalid JSON", MALFORMED_RESPONSE)

        reply = payload.get("response") if isinstance(payload, dict) else None
        data = reply.get("data", []) if isinstance(reply, dict) else None
        if not isinstance(data, list) or not all(_is_plan_record(r) for r in data):
            return Failure("Record database returned an unexpected find payload", MALFORMED_RESPONSE)
        return Success(format_plan(user_name, date_range, data))
