"""
Thin HTTP client for the OpenAI-compatible upstream API.
Responses are returned as parsed JSON, untouched.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

import httpx

from app.config import get_settings
from app.context import current
from app.logger import log
from routers.mcp_errors import UpstreamError

HttpMethod = Literal["GET", "POST"]


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _resolve_api_key() -> str:
    """Pick the bearer credential for the upstream call."""
    settings = get_settings()
    if settings.forward_caller_key:
        ctx = current()
        if ctx is not None:
            return ctx.external_api_key
    return settings.openai_api_key


def _error_message(response: httpx.Response) -> str:
    # OpenAI-style bodies: {"error": {"message": "..."}}
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "HTTP error"
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return response.reason_phrase or "HTTP error"


async def openai_request(method: HttpMethod, path: str, body: Any | None = None) -> Any:
    """
    Call `path` on the upstream API and return the parsed JSON body.

    Raises UpstreamError on any non-2xx status or transport failure. No retries.
    """
    if method not in ("GET", "POST"):
        raise ValueError(f"Unsupported method: {method}")

    settings = get_settings()
    url = f"{settings.openai_base_url}{path}"
    headers = {
        "Authorization": f"Bearer {_resolve_api_key()}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    try:
        async with _build_client(settings.api_timeout) as client:
            if body is None:
                response = await client.request(method, url, headers=headers)
            else:
                response = await client.request(method, url, headers=headers, json=body)
    except asyncio.CancelledError:
        raise
    except httpx.HTTPError as e:
        log.error("upstream_request_failed", method=method, path=path, error=str(e))
        raise UpstreamError(None, str(e) or e.__class__.__name__) from e

    if not response.is_success:
        message = _error_message(response)
        log.error(
            "upstream_request_failed",
            method=method,
            path=path,
            status_code=response.status_code,
            error=message,
        )
        raise UpstreamError(response.status_code, message)

    try:
        return response.json()
    except ValueError as e:
        log.error("upstream_invalid_json", method=method, path=path)
        raise UpstreamError(response.status_code, "Upstream returned a non-JSON body") from e
