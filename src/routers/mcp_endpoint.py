"""
The `/mcp` protocol endpoint.

Every HTTP request gets its own stateless transport and request context; the
protocol server behind it is shared.
"""

from __future__ import annotations

import asyncio

import anyio
from anyio.abc import TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from app.context import RequestContext, request_scope
from app.logger import log

from .mcp_errors import (
    INTERNAL_ERROR,
    INTERNAL_ERROR_MESSAGE,
    MISSING_CREDENTIAL,
    MissingCredentialError,
    jsonrpc_error,
)

_BEARER_PREFIX = "bearer "


def extract_api_key(auth_header: str | None) -> str:
    """
    Pull the caller's credential out of an Authorization header.

    Accepts `Bearer <token>` (prefix case-insensitive) or a bare token.
    Raises MissingCredentialError if nothing usable remains after trimming.
    """
    header = auth_header or ""
    if header.lower().startswith(_BEARER_PREFIX):
        api_key = header[len(_BEARER_PREFIX) :].strip()
    else:
        api_key = header.strip()
    if not api_key:
        raise MissingCredentialError()
    return api_key


class MCPEndpoint:
    """ASGI app serving MCP streamable HTTP in stateless JSON mode."""

    def __init__(self, server: Server, *, json_response: bool = True) -> None:
        self.server = server
        self.json_response = json_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        try:
            api_key = extract_api_key(request.headers.get("authorization"))
        except MissingCredentialError as e:
            log.info("mcp_request_rejected", reason=e.message, method=request.method)
            response = JSONResponse(
                jsonrpc_error(MISSING_CREDENTIAL, e.message), status_code=e.status_code
            )
            await response(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            with request_scope(RequestContext(external_api_key=api_key)):
                await self._handle(scope, receive, tracking_send)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error("mcp_request_failed", error=str(e), exc_info=True)
            if not response_started:
                response = JSONResponse(
                    jsonrpc_error(INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE), status_code=500
                )
                await response(scope, receive, send)

    async def _handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=self.json_response,
            event_store=None,
        )

        async def run_server(*, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                try:
                    await self.server.run(
                        read_stream,
                        write_stream,
                        self.server.create_initialization_options(),
                        stateless=True,
                    )
                except Exception as e:
                    log.error("mcp_server_crashed", error=str(e), exc_info=True)

        # The server task is spawned inside the request scope, so it inherits the context
        async with anyio.create_task_group() as tg:
            await tg.start(run_server)
            try:
                await transport.handle_request(scope, receive, send)
            finally:
                await transport.terminate()
                tg.cancel_scope.cancel()
