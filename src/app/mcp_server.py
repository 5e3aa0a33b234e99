# src/app/mcp_server.py
from __future__ import annotations

import asyncio
import json
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from pydantic import BaseModel, Field

from app.logger import log
from routers.mcp_errors import ToolExecutionError, ToolInputError
from services.openai_client import openai_request
from services.tool_registry import ToolRegistry, ToolResult

SERVER_NAME = "openai-mcp-server"
SERVER_VERSION = "1.0.0"


def pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


# ---------- Tool inputs ----------
class ChatInput(BaseModel):
    model: str = Field(description="Model ID, e.g. gpt-4o")
    prompt: str = Field(description="User prompt sent as a single user message")


class ModelsInput(BaseModel):
    """No arguments."""


class EmbeddingsInput(BaseModel):
    model: str = Field(description="Embedding model ID")
    text: str = Field(description="Text to embed")


# ---------- Tool handlers ----------
# Keep these thin: upstream JSON is relayed as-is.
async def openai_chat(args: ChatInput) -> ToolResult:
    """Send a chat prompt to an OpenAI model."""
    log.info("tool_called", tool="chat", model=args.model, prompt=args.prompt)
    data = await openai_request(
        "POST",
        "/chat/completions",
        {
            "model": args.model,
            "messages": [{"role": "user", "content": args.prompt}],
        },
    )
    return ToolResult.text(pretty(data))


async def openai_models(args: ModelsInput) -> ToolResult:
    """List available OpenAI models."""
    log.info("tool_called", tool="models")
    data = await openai_request("GET", "/models")
    return ToolResult.text(pretty(data))


async def openai_embeddings(args: EmbeddingsInput) -> ToolResult:
    """Generate OpenAI embeddings for text."""
    log.info("tool_called", tool="embeddings", model=args.model, text=args.text)
    data = await openai_request("POST", "/embeddings", {"input": args.text, "model": args.model})
    return ToolResult.text(pretty(data))


def build_registry() -> ToolRegistry:
    """Register the OpenAI tools. Raises on duplicate names."""
    registry = ToolRegistry()
    registry.register("chat", "Send a chat prompt to OpenAI models", ChatInput, openai_chat)
    registry.register("models", "List available OpenAI models", ModelsInput, openai_models)
    registry.register(
        "embeddings", "Generate OpenAI embeddings for text", EmbeddingsInput, openai_embeddings
    )
    for name in registry.tools:
        log.info("tool_registered", tool=name)
    return registry


def create_mcp_server(registry: ToolRegistry) -> Server:
    """
    Build the protocol server around a registry.

    The registry is frozen here; the returned server is shared by every request.
    """
    registry.freeze()
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return registry.list_tools()

    @server.call_tool()
    async def _call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        try:
            result = await registry.dispatch(name, arguments)
        except asyncio.CancelledError:
            # Re-raise cancellation to allow proper cleanup
            raise
        except Exception as e:
            # Full detail stays in the logs; the client only sees the generic message
            log.error("tool_failed", tool=name, error=str(e), exc_info=True)
            raise ToolExecutionError() from e

        if result.is_error:
            raise ToolInputError(result.content[0].text if result.content else "Tool error")
        return list(result.content)

    return server


# Single process-wide protocol server
registry = build_registry()
mcp_server = create_mcp_server(registry)
