"""Tool outcomes and the envelope they are returned in.

Every tool handler resolves to exactly one of :class:`Success` or
:class:`Failure`.  :func:`to_envelope` is the only place an outcome becomes
the MCP ``CallToolResult`` the caller sees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, assert_never

from mcp.types import CallToolResult, TextContent

# ---------------------------------------------------------------------------
# Failure codes
# ---------------------------------------------------------------------------

CONFIGURATION_ERROR: Final = "configuration_error"
VALIDATION_ERROR: Final = "validation_error"
TRANSPORT_ERROR: Final = "transport_error"
UPSTREAM_STATUS: Final = "upstream_status"
MALFORMED_RESPONSE: Final = "malformed_response"
AUTHENTICATION_ERROR: Final = "authentication_error"
RELEASE_ERROR: Final = "release_error"
UNKNOWN_TOOL: Final = "unknown_tool"


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Failure:
    message: str
    code: str


ToolOutcome = Success | Failure


def to_envelope(outcome: ToolOutcome) -> CallToolResult:
    """Map an outcome to its single text block and ``isError`` flag."""
    match outcome:
        case Success(text=text):
            return CallToolResult(content=[TextContent(type="text", text=text)], isError=False)
        case Failure(message=message):
            return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)
        case _:
            assert_never(outcome)
