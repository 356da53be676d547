# src/message_retraction/main.py
"""Main entry point for the message retraction API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from message_retraction.api.v1 import messages_router
from message_retraction.core.settings import settings
from message_retraction.db.session import init_engine
from message_retraction.services.deletion import DeletionError, InvalidArgument

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Message Retraction API",
    description="Delete-for-everyone for direct and group conversations",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(messages_router, prefix="/api/v1")


@app.exception_handler(DeletionError)
async def deletion_error_handler(request: Request, exc: DeletionError) -> JSONResponse:
    """Render tagged retraction failures as `{error, detail}` bodies."""
    if exc.http_status >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.code, "detail": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report undecodable request bodies in the same `{error, detail}` shape."""
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=InvalidArgument.http_status,
        content={"error": InvalidArgument.code, "detail": "Malformed request body"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    init_engine()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Delete-for-everyone for direct and group conversations",
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("message_retraction.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
