"""
Tool registry and dispatcher.

Tools are registered once at startup, then the registry is frozen and shared
read-only by every request.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from mcp import types
from pydantic import BaseModel, ValidationError

from routers.mcp_errors import DuplicateToolError, RegistryFrozenError

ToolHandler = Callable[[Any], Awaitable["ToolResult | str"]]


class ToolResult(BaseModel):
    """Envelope returned by a tool invocation: `{content: [...]}`."""

    content: list[types.TextContent]
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls(content=[types.TextContent(type="text", text=text)])

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(content=[types.TextContent(type="text", text=message)], is_error=True)


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
        )


def format_validation_error(tool_name: str, exc: ValidationError) -> str:
    """Render pydantic errors as `field: reason` pairs."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return f"Invalid arguments for tool '{tool_name}': " + "; ".join(parts)


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def tools(self) -> Mapping[str, ToolDefinition]:
        return MappingProxyType(self._tools)

    def register(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel],
        handler: ToolHandler,
    ) -> ToolDefinition:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register tool '{name}': registry is frozen")
        if name in self._tools:
            raise DuplicateToolError(f"Tool '{name}' is already registered")
        definition = ToolDefinition(
            name=name, description=description, input_model=input_model, handler=handler
        )
        self._tools[name] = definition
        return definition

    def freeze(self) -> ToolRegistry:
        self._frozen = True
        return self

    def list_tools(self) -> list[types.Tool]:
        return [definition.to_mcp_tool() for definition in self._tools.values()]

    async def dispatch(self, name: str, raw_args: dict[str, Any] | None) -> ToolResult:
        """
        Validate `raw_args` and invoke the named tool.

        Unknown tools and invalid arguments come back as error results; the
        handler is not called in either case. Handler exceptions propagate.
        """
        definition = self._tools.get(name)
        if definition is None:
            return ToolResult.error(f"Unknown tool: {name}")

        try:
            args = definition.input_model.model_validate(raw_args or {})
        except ValidationError as e:
            return ToolResult.error(format_validation_error(name, e))

        result = await definition.handler(args)
        if isinstance(result, ToolResult):
            return result
        return ToolResult.text(result)
