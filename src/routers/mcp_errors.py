from __future__ import annotations

from typing import Any

# JSON-RPC error codes used on the /mcp endpoint
MISSING_CREDENTIAL = 401
INTERNAL_ERROR = -32603

INTERNAL_ERROR_MESSAGE = "Internal server error"
MISSING_CREDENTIAL_MESSAGE = "Missing Authorization API key"


class MissingCredentialError(Exception):
    """Raised when an /mcp request carries no usable Authorization value."""

    status_code = 401

    def __init__(self, message: str = MISSING_CREDENTIAL_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class UpstreamError(Exception):
    """The upstream API answered with a non-2xx status or could not be reached."""

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(
            f"Upstream returned {status_code}: {message}"
            if status_code is not None
            else f"Upstream request failed: {message}"
        )
        self.status_code = status_code
        self.message = message


class ToolExecutionError(Exception):
    """Client-facing stand-in for any failure inside a tool handler.

    Carries only the generic message; the original exception is chained and logged.
    """

    def __init__(self) -> None:
        super().__init__(INTERNAL_ERROR_MESSAGE)


class ToolInputError(Exception):
    """Surfaces a dispatcher error result (bad arguments, unknown tool) to the MCP client."""


class DuplicateToolError(ValueError):
    """A tool with the same name is already registered."""


class RegistryFrozenError(RuntimeError):
    """The tool registry no longer accepts registrations."""


def jsonrpc_error(code: int, message: str) -> dict[str, Any]:
    """Build the JSON-RPC error envelope returned by the /mcp endpoint."""
    return {
        "jsonrpc": "2.0",
        "error": {"code": code, "message": message},
        "id": None,
    }
