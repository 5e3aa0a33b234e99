# src/app/context.py
"""
Per-request context carrier.

The `/mcp` endpoint opens a scope holding the caller's credential; tool
handlers deep inside the MCP server read it back with `current()` instead of
receiving it as a parameter. Backed by a ContextVar: every asyncio task
copies the context it was created in, so work spawned inside a scope sees
the scope's value and concurrent requests never see each other's.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import ParamSpec, TypeVar

from pydantic import BaseModel, ConfigDict

P = ParamSpec("P")
T = TypeVar("T")


class RequestContext(BaseModel):
    """Ambient values for one inbound MCP HTTP request."""

    model_config = ConfigDict(frozen=True)

    external_api_key: str


_request_context: ContextVar[RequestContext | None] = ContextVar(
    "request_context", default=None
)


def current() -> RequestContext | None:
    """Return the active request context, or None outside any request scope."""
    return _request_context.get()


@contextmanager
def request_scope(ctx: RequestContext) -> Iterator[RequestContext]:
    """Make `ctx` the active context until the block exits."""
    token = _request_context.set(ctx)
    try:
        yield ctx
    finally:
        _request_context.reset(token)


async def run(
    ctx: RequestContext,
    fn: Callable[P, Awaitable[T]],
    *args: P.args,
    **kwargs: P.kwargs,
) -> T:
    """Await `fn(*args, **kwargs)` with `ctx` as the ambient request context."""
    with request_scope(ctx):
        return await fn(*args, **kwargs)
