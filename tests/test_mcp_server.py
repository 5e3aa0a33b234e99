# tests/test_mcp_server.py
import json

import pytest

from app.mcp_server import build_registry, mcp_server, pretty, registry
from routers.mcp_errors import DuplicateToolError, RegistryFrozenError
from services.tool_registry import ToolRegistry


class TestMCPTools:
    """The three OpenAI tools, dispatched directly."""

    def test_registered_tool_names(self):
        assert set(registry.tools) == {"chat", "models", "embeddings"}

    def test_shared_registry_is_frozen(self):
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register("chat2", "x", registry.tools["chat"].input_model, lambda a: None)

    def test_registering_builtin_tools_twice_fails(self):
        fresh = build_registry()
        chat = fresh.tools["chat"]
        with pytest.raises(DuplicateToolError):
            fresh.register("chat", chat.description, chat.input_model, chat.handler)

    def test_server_name(self):
        assert mcp_server.name == "openai-mcp-server"

    @pytest.mark.asyncio
    async def test_chat_calls_upstream_once(self, upstream):
        response = {"id": "chatcmpl-1", "choices": [{"message": {"content": "hello"}}]}
        upstream.add("POST", "/v1/chat/completions", json_body=response)

        result = await registry.dispatch("chat", {"model": "gpt-4", "prompt": "hi"})

        assert len(upstream.requests) == 1
        assert upstream.requests[0].method == "POST"
        assert upstream.requests[0].url.path == "/v1/chat/completions"
        assert upstream.json_bodies() == [
            {"model": "gpt-4", "messages": [{"role": "user", "content": "hi"}]}
        ]
        assert result.is_error is False
        assert len(result.content) == 1
        assert result.content[0].type == "text"
        assert result.content[0].text == json.dumps(response, indent=2)

    @pytest.mark.asyncio
    async def test_models_calls_upstream_once(self, upstream):
        upstream.add("GET", "/v1/models", json_body={"object": "list", "data": []})

        result = await registry.dispatch("models", {})

        assert [(r.method, r.url.path) for r in upstream.requests] == [("GET", "/v1/models")]
        assert result.content[0].text == pretty({"object": "list", "data": []})

    @pytest.mark.asyncio
    async def test_embeddings_calls_upstream_once(self, upstream):
        upstream.add("POST", "/v1/embeddings", json_body={"data": [{"embedding": [0.1, 0.2]}]})

        result = await registry.dispatch("embeddings", {"model": "m", "text": "t"})

        assert [(r.method, r.url.path) for r in upstream.requests] == [("POST", "/v1/embeddings")]
        assert upstream.json_bodies() == [{"input": "t", "model": "m"}]
        assert json.loads(result.content[0].text) == {"data": [{"embedding": [0.1, 0.2]}]}

    @pytest.mark.asyncio
    async def test_invalid_input_skips_upstream(self, upstream):
        result = await registry.dispatch("chat", {"prompt": "hi"})

        assert result.is_error is True
        assert "model" in result.content[0].text
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, upstream):
        upstream.add(
            "POST", "/v1/chat/completions", status_code=500, json_body={"error": {"message": "down"}}
        )

        with pytest.raises(Exception, match="down"):
            await registry.dispatch("chat", {"model": "gpt-4", "prompt": "hi"})


def test_empty_registry_builds_server():
    from app.mcp_server import create_mcp_server

    reg = ToolRegistry()
    server = create_mcp_server(reg)
    assert reg.frozen
    assert server.name == "openai-mcp-server"
