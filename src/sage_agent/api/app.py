"""
Core API backend for Sage.

This module is a thin HTTP adapter over :meth:`Agent.process_user_query_pipeline`.
It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **GET /tools**   - the registered tool catalog.
- **POST /agent**  - single query: {"query": "...", "address": "0x...", "private_key": "..."}
"""

import logging
from typing import List

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
)

from sage_agent.agent.pipeline import Agent
from sage_agent.api.models import (
    MessageRequest,
    MessageResponse,
    ToolInfo,
)
from sage_agent.common import (
    AnsiColors,
    colored_print,
)
from sage_agent.config import settings
from sage_agent.core.context import CallerContext
from sage_agent.core.errors import CallerContextError

logger = logging.getLogger(__name__)

_agent: Agent | None = None

app = FastAPI(title="Sage API", version="0.1.0", description="Sage tool-calling agent API")


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
def get_agent() -> Agent:
    """Return the process-wide agent, building it from settings on first use."""
    global _agent  # pylint: disable=global-statement
    if _agent is None:
        _agent = Agent.from_settings()
    return _agent


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/tools", response_model=List[ToolInfo], summary="List registered tools")
async def list_tools(agent: Agent = Depends(get_agent)) -> List[ToolInfo]:
    """List every tool the selector may choose from."""
    return [ToolInfo(**tool.describe()) for tool in agent.registry.get_all()]


@app.post("/agent", response_model=MessageResponse, summary="Process a query")
async def agent_endpoint(
    req: MessageRequest, agent: Agent = Depends(get_agent)
) -> MessageResponse:
    """Run the pipeline for one query on behalf of the caller in the request."""
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Please provide a query to process.")

    try:
        context = CallerContext(address=req.address, private_key=req.private_key)
    except CallerContextError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.debug("Processing query %r for %r", req.query, context)

    result = await agent.process_user_query_pipeline(req.query, context)
    return MessageResponse(result=result, address=context.address)


@app.get("/", summary="API root")
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Welcome to the Sage API! Use /docs for API documentation."}


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Sage API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )

    # Fail fast on a bad provider or tool module instead of on the first request
    get_agent()

    colored_print(f"🔮 Sage API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "sage_agent.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m sage_agent.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
