from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.routing import Route

from app.config import get_settings
from app.logger import configure_logging
from app.mcp_server import mcp_server
from routers.mcp_endpoint import MCPEndpoint

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="OpenAI MCP Server", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Mcp-Session-Id"],
)

# Raw ASGI route: every method on /mcp goes to the MCP transport
app.router.routes.append(Route("/mcp", endpoint=MCPEndpoint(mcp_server), include_in_schema=False))


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "ok"}


def main() -> None:  # pragma: no cover
    """Entry point for the MCP HTTP server."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
        factory=False,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
