"""Tests for the record-database session broker.

The properties under test are about request counts: one login, at most one
find, and exactly one logout for every login that produced a token.
"""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

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
from issueviewer.recorddb import RecordDbBroker, Session, format_plan
from tests._fakes import FIND_PATH, LOGOUT_PATH, SESSIONS_PATH, TOKEN, FakeUpstream


@pytest.fixture
def broker(recorddb_config: RecordDbConfig, client: httpx.AsyncClient) -> RecordDbBroker:
    return RecordDbBroker(recorddb_config, client)


async def _find(broker: RecordDbBroker) -> ToolOutcome:
    return await broker.run(lambda s: broker.find_resource_plan(s, "alice", "1/1/2025...1/31/2025"))


class TestPreconditions:
    @pytest.mark.parametrize(("username", "password"), [(None, "secret"), ("api", None), ("", ""), (None, None)])
    async def test_missing_credentials_make_no_request(
        self, client: httpx.AsyncClient, upstream: FakeUpstream, username: str | None, password: str | None
    ) -> None:
        config = RecordDbConfig(host="fm.example.test", database="plans", layout="ResourcePlan", username=username, password=password)
        outcome = await _find(RecordDbBroker(config, client))
        assert isinstance(outcome, Failure)
        assert outcome.code == CONFIGURATION_ERROR
        assert upstream.requests == []


class TestLogin:
    async def test_login_request_shape(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records({"HoursPlanned": 8})
        await _find(broker)
        login = upstream.requests[0]
        assert login.method == "POST"
        assert login.url.path == SESSIONS_PATH
        expected = base64.b64encode(b"api:secret").decode()
        assert login.headers["Authorization"] == f"Basic {expected}"
        assert json.loads(login.content) == {}

    @pytest.mark.parametrize("status", [401, 500])
    async def test_login_failure_skips_find_and_logout(self, broker: RecordDbBroker, upstream: FakeUpstream, status: int) -> None:
        upstream.add("POST", SESSIONS_PATH, status=status, json={"messages": [{"code": "212", "message": "Invalid account"}]})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == AUTHENTICATION_ERROR
        assert str(status) in outcome.message
        assert upstream.count("POST", FIND_PATH) == 0
        assert upstream.count("DELETE") == 0

    async def test_login_transport_error(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.add("POST", SESSIONS_PATH, exc=httpx.ConnectError("connection refused"))
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == TRANSPORT_ERROR
        assert upstream.count("DELETE") == 0

    async def test_login_without_token(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.add("POST", SESSIONS_PATH, json={"response": {}, "messages": [{"code": "0", "message": "OK"}]})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == AUTHENTICATION_ERROR
        assert upstream.count("POST", FIND_PATH) == 0
        assert upstream.count("DELETE") == 0


class TestReleaseAlwaysHappens:
    async def test_logout_once_after_records_found(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records({"HoursPlanned": 40, "HoursActual": 32.5, "HoursRemaining": "7.5"})
        outcome = await _find(broker)
        assert outcome == Success("Resource plan for alice (1/1/2025...1/31/2025):\nPlanned: 40 h | Actual: 32.5 h | Remaining: 7.5 h")
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_logout_once_after_empty_result(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records()
        outcome = await _find(broker)
        assert outcome == Success("No resource plan found for alice in 1/1/2025...1/31/2025.")
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_logout_once_after_no_records_match_reply(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, status=500, json={"response": {}, "messages": [{"code": "401", "message": "No records match the request"}]})
        outcome = await _find(broker)
        assert isinstance(outcome, Success)
        assert outcome.text.startswith("No resource plan found")
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_logout_once_after_find_failure(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, status=500, json={"response": {}, "messages": [{"code": "105", "message": "Layout is missing"}]})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == UPSTREAM_STATUS
        assert "500" in outcome.message
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_logout_once_after_find_transport_error(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, exc=httpx.ReadTimeout("timed out"))
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == TRANSPORT_ERROR
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_logout_when_operation_raises(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()

        async def explode(session: Session) -> ToolOutcome:
            msg = "boom"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="boom"):
            await broker.run(explode)
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_operation_runs_exactly_once(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        seen: list[Session] = []

        async def op(session: Session) -> ToolOutcome:
            seen.append(session)
            return Success("ok")

        assert await broker.run(op) == Success("ok")
        assert len(seen) == 1
        assert seen[0].token == TOKEN
        assert seen[0].logout_url.endswith(LOGOUT_PATH)
        assert TOKEN not in repr(seen[0])


class TestReleaseFailurePrecedence:
    async def test_release_failure_overrides_success(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.find_records({"HoursPlanned": 8})
        upstream.add("DELETE", LOGOUT_PATH, status=500, json={"messages": [{"code": "952", "message": "Invalid token"}]})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == RELEASE_ERROR
        assert "may not have been revoked" in outcome.message

    async def test_release_transport_failure_overrides_success(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.find_records()
        upstream.add("DELETE", LOGOUT_PATH, exc=httpx.ConnectError("reset"))
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == RELEASE_ERROR

    async def test_find_failure_wins_over_release_failure(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.add("POST", FIND_PATH, status=502, content=b"bad gateway")
        upstream.add("DELETE", LOGOUT_PATH, status=500, json={})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == UPSTREAM_STATUS
        assert "502" in outcome.message
        assert upstream.count("DELETE", LOGOUT_PATH) == 1


class TestFind:
    async def test_find_request_shape(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records()
        await _find(broker)
        find = next(r for r in upstream.requests if r.url.path == FIND_PATH)
        assert find.headers["Authorization"] == f"Bearer {TOKEN}"
        assert json.loads(find.content) == {"query": [{"UserName": "=alice", "DateRange": "=1/1/2025...1/31/2025"}]}

    async def test_requests_are_sequential(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records()
        await _find(broker)
        assert [(r.method, r.url.path) for r in upstream.requests] == [
            ("POST", SESSIONS_PATH),
            ("POST", FIND_PATH),
            ("DELETE", LOGOUT_PATH),
        ]

    async def test_missing_numeric_fields_default_to_zero(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.find_records({"UserName": "alice"}, {"HoursPlanned": "", "HoursActual": None, "HoursRemaining": "n/a"})
        outcome = await _find(broker)
        assert isinstance(outcome, Success)
        assert outcome.text.count("Planned: 0 h | Actual: 0 h | Remaining: 0 h") == 2

    async def test_invalid_json_find(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, content=b"not json")
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == MALFORMED_RESPONSE
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    @pytest.mark.parametrize("field_data", ["oops", [1, 2], 42])
    async def test_non_mapping_field_data_is_malformed(self, broker: RecordDbBroker, upstream: FakeUpstream, field_data: object) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, json={"response": {"data": [{"fieldData": field_data, "recordId": "1"}]}})
        outcome = await _find(broker)
        assert isinstance(outcome, Failure)
        assert outcome.code == MALFORMED_RESPONSE
        assert upstream.count("DELETE", LOGOUT_PATH) == 1

    async def test_record_without_field_data_reads_as_zero(self, broker: RecordDbBroker, upstream: FakeUpstream) -> None:
        upstream.login_ok()
        upstream.logout_ok()
        upstream.add("POST", FIND_PATH, json={"response": {"data": [{"recordId": "1"}]}})
        outcome = await _find(broker)
        assert isinstance(outcome, Success)
        assert "Planned: 0 h | Actual: 0 h | Remaining: 0 h" in outcome.text


class TestConcurrency:
    async def test_concurrent_runs_each_own_a_session(self, recorddb_config: RecordDbConfig) -> None:
        issued: list[str] = []
        revoked: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if request.method == "POST" and path.endswith("/sessions"):
                token = f"tok-{len(issued)}"
                issued.append(token)
                return httpx.Response(200, json={"response": {"token": token}})
            if request.method == "POST" and path.endswith("/_find"):
                return httpx.Response(200, json={"response": {"data": []}})
            if request.method == "DELETE":
                revoked.append(path.rsplit("/", 1)[-1])
                return httpx.Response(200, json={"response": {}})
            msg = f"Unexpected request: {request.method} {path}"
            raise AssertionError(msg)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            broker = RecordDbBroker(recorddb_config, client)
            results = await asyncio.gather(*(_find(broker) for _ in range(5)))

        assert all(isinstance(r, Success) for r in results)
        assert len(set(issued)) == 5
        assert sorted(revoked) == sorted(issued)


class TestFormatPlan:
    def test_multiple_records_one_line_each(self) -> None:
        text = format_plan(
            "bob",
            "Q1",
            [{"fieldData": {"HoursPlanned": 10, "HoursActual": 4, "HoursRemaining": 6}}, {"fieldData": {"HoursPlanned": 2.25}}],
        )
        assert text.splitlines() == [
            "Resource plan for bob (Q1):",
            "Planned: 10 h | Actual: 4 h | Remaining: 6 h",
            "Planned: 2.25 h | Actual: 0 h | Remaining: 0 h",
        ]

    @pytest.mark.parametrize("value", ["nan", "inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_hours_read_as_zero(self, value: object) -> None:
        text = format_plan("bob", "Q1", [{"fieldData": {"HoursPlanned": value, "HoursActual": 3}}])  # type: ignore[typeddict-item]
        assert text.splitlines()[1] == "Planned: 0 h | Actual: 3 h | Remaining: 0 h"

    def test_base_url_accepts_explicit_scheme(self) -> None:
        assert RecordDbConfig(host="http://localhost:8080/fmi/data/v1/").base_url == "http://localhost:8080/fmi/data/v1"
        assert RecordDbConfig(host="fm.example.test").base_url == "https://fm.example.test/fmi/data/vLatest"
