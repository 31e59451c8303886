"""Tool registry and dispatcher.

A :class:`ToolDescriptor` binds a tool name to its argument schema and an
async handler.  :meth:`ToolRegistry.dispatch` runs the fixed pipeline
validate -> handler -> envelope and is the only entry point the transport
uses.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from mcp.types import CallToolResult, Tool

from issueviewer.outcome import UNKNOWN_TOOL, Failure, ToolOutcome, to_envelope
from issueviewer.validation import ArgumentSchema, input_schema, validate_arguments

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolOutcome]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    schema: ArgumentSchema
    handler: ToolHandler = field(compare=False)

    def __post_init__(self) -> None:
        # Freeze the schema so a caller's dict cannot change a registered tool.
        object.__setattr__(self, "schema", MappingProxyType(dict(self.schema)))

    def to_tool(self) -> Tool:
        return Tool(name=self.name, description=self.description, inputSchema=input_schema(self.schema))


class ToolRegistry:
    """Name-keyed set of tools, unique at registration time."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        """Add *descriptor*.

        Raises ValueError if a tool with the same name is already registered.
        """
        if descriptor.name in self._tools:
            msg = f"Tool already registered: {descriptor.name}"
            raise ValueError(msg)
        self._tools[descriptor.name] = descriptor

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def tools(self) -> list[Tool]:
        return [d.to_tool() for d in self._tools.values()]

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None) -> ToolOutcome:
        descriptor = self._tools.get(name)
        if descriptor is None:
            return Failure(f"Unknown tool: {name}", UNKNOWN_TOOL)
        args, err = validate_arguments(descriptor.schema, arguments)
        if err:
            logger.debug("Rejected arguments for %s: %s", name, err.message)
            return err
        return await descriptor.handler(args)

    async def dispatch(self, name: str, arguments: Mapping[str, Any] | None) -> CallToolResult:
        return to_envelope(await self.invoke(name, arguments))
