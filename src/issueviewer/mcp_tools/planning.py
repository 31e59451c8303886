"""MCP tools backed by the session-authenticated record database."""

from __future__ import annotations

from functools import partial
from typing import Any

from issueviewer.outcome import ToolOutcome
from issueviewer.recorddb import RecordDbBroker
from issueviewer.registry import ToolDescriptor
from issueviewer.validation import FieldSpec


def register(broker: RecordDbBroker) -> list[ToolDescriptor]:
    """Return the planning-domain tool descriptors bound to *broker*."""

    async def _handle_get_resource_plan(arguments: dict[str, Any]) -> ToolOutcome:
        find = partial(
            broker.find_resource_plan,
            user_name=arguments["user_name"],
            date_range=arguments["date_range"],
        )
        return await broker.run(find)

    return [
        ToolDescriptor(
            name="get_resource_plan",
            description="Get planned, actual and remaining hours for a user over a date range.",
            schema={
                "user_name": FieldSpec("string", "User name as stored in the resource plan", non_empty=True),
                "date_range": FieldSpec("string", "Date range as stored in the resource plan, e.g. '1/1/2025...1/31/2025'", non_empty=True),
            },
            handler=_handle_get_resource_plan,
        ),
    ]
