"""
Study Hub FastAPI Application Entry Point.

Run with: uvicorn studyhub.main:app --reload
"""

import asyncio
import logging
import math
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studyhub.api.routes import (
    auth,
    bookmarks,
    chat,
    files,
    notes,
    resources,
    study_logs,
    tasks,
    timetable,
)
from studyhub.config import get_settings
from studyhub.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from studyhub.security import InvalidRequestError
from studyhub.services.rate_limiter import RateLimitExceededError, rate_limiter

settings = get_settings()
logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _sweep_rate_limits() -> None:
    """Drop expired rate-limit entries every few minutes."""
    while True:
        await asyncio.sleep(settings.rate_limit_sweep_seconds)
        rate_limiter.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    configure_logging()
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    sweeper = asyncio.create_task(_sweep_rate_limits())
    yield
    # Shutdown
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title=settings.app_name,
    description="Student productivity API: tasks, notes, timetable, study tracking, materials and an AI study assistant",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (last added runs first)
app.add_middleware(SecurityHeadersMiddleware, environment=settings.environment)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id", "X-RateLimit-Remaining", "Retry-After"],
    max_age=settings.cors_max_age,
)


# =============================================================================
# ERROR RESPONSES
# =============================================================================


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _field_errors(exc: RequestValidationError) -> list[str]:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        suffix = "is required" if error.get("type") == "missing" else "is invalid"
        errors.append(f"{field or 'request'} {suffix}")
    return errors


@app.exception_handler(RateLimitExceededError)
async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    reset_time = exc.result.reset_time
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Too many requests. Please try again later.",
            "remaining": 0,
            "reset_time": datetime.fromtimestamp(reset_time, timezone.utc).isoformat(),
            "timestamp": _timestamp(),
        },
        headers={
            "X-RateLimit-Remaining": "0",
            "Retry-After": str(max(0, math.ceil(reset_time - time.time()))),
        },
    )


def _invalid_request(errors: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request format", "errors": errors, "timestamp": _timestamp()},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _field_errors(exc)
    logger.warning("Invalid request to %s %s: %s", request.method, request.url.path, errors)
    return _invalid_request(errors)


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    logger.warning("Invalid request to %s %s: %s", request.method, request.url.path, exc.errors)
    return _invalid_request(exc.errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "timestamp": _timestamp()},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred", "timestamp": _timestamp()},
    )


# Include routers
app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(notes.router)
app.include_router(timetable.router)
app.include_router(study_logs.router)
app.include_router(resources.router)
app.include_router(bookmarks.router)
app.include_router(files.router)
app.include_router(chat.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
