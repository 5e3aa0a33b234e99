# tests/conftest.py
import json
import os
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import httpx
import pytest

# Settings are read at import time by app.main; set the env before importing it.
TEST_ENV_VARS = {
    "OPENAI_API_KEY": "test-key-12345",
    "OPENAI_BASE_URL": "https://upstream.test/v1",
    "API_TIMEOUT": "10.0",  # Shorter timeout for tests
}
for _key, _value in TEST_ENV_VARS.items():
    os.environ.setdefault(_key, _value)

from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import get_settings  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Pin the upstream environment for all tests."""
    original_env = {}
    for key, value in TEST_ENV_VARS.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value
    get_settings.cache_clear()

    yield

    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value
    get_settings.cache_clear()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, Any]:
    """Create an async test client for FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class UpstreamRecorder:
    """Fake upstream API: records requests and answers from a fixed table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], httpx.Response] = {}

    def add(self, method: str, path: str, status_code: int = 200, json_body: Any = None) -> None:
        self.responses[(method, path)] = httpx.Response(status_code, json=json_body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"error": {"message": "not found"}})
        return response

    def json_bodies(self) -> list[Any]:
        return [json.loads(r.content) if r.content else None for r in self.requests]


@pytest.fixture
def upstream(monkeypatch: pytest.MonkeyPatch) -> UpstreamRecorder:
    """Route every upstream call through an in-memory httpx transport."""
    recorder = UpstreamRecorder()
    transport = httpx.MockTransport(recorder.handler)

    def fake_build_client(timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=transport, timeout=timeout)

    monkeypatch.setattr("services.openai_client._build_client", fake_build_client)
    return recorder


@pytest.fixture
def jsonrpc() -> Callable[..., dict[str, Any]]:
    """Build JSON-RPC request bodies."""

    def _build(method: str, params: dict[str, Any] | None = None, id_: int = 1) -> dict[str, Any]:
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "method": method}
        if params is not None:
            body["params"] = params
        return body

    return _build
