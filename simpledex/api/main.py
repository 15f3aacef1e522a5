"""FastAPI application for SimpleDEX.

Note: Rate limiting and authentication are intentionally not implemented at
the application level. The pool is permissionless, and request throttling
belongs to the infrastructure layer (reverse proxy / load balancer).
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from simpledex import __version__
from simpledex.api.endpoints import router
from simpledex.errors import SimpleDexError
from simpledex.models.api import ErrorResponse
from simpledex.safe_int import SafeIntError

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("SIMPLEDEX_HOST", "0.0.0.0")
PORT = int(os.environ.get("SIMPLEDEX_PORT", "8000"))
DEBUG = os.environ.get("SIMPLEDEX_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (64 KB); every request body is a handful of fields
MAX_REQUEST_SIZE = 64 * 1024

app = FastAPI(
    title="SimpleDEX",
    description="Constant product market maker with quote and execution helper",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(SimpleDexError)
async def simpledex_error_handler(request: Request, exc: SimpleDexError) -> JSONResponse:
    """Report pool and helper rejections as 400 with the error kind."""
    logger.warning(
        "request_rejected",
        path=request.url.path,
        error=exc.kind,
        detail=str(exc),
    )
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=exc.kind, detail=str(exc)).model_dump(),
    )


@app.exception_handler(SafeIntError)
async def arithmetic_error_handler(request: Request, exc: SafeIntError) -> JSONResponse:
    """Report checked-arithmetic failures as 400, named by error class."""
    kind = type(exc).__name__
    logger.warning("request_rejected", path=request.url.path, error=kind, detail=str(exc))
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=kind, detail=str(exc)).model_dump(),
    )


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the SimpleDEX API server.

    Configuration via environment variables:
    - SIMPLEDEX_HOST: Host to bind to (default: 0.0.0.0)
    - SIMPLEDEX_PORT: Port to bind to (default: 8000)
    - SIMPLEDEX_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "simpledex.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
