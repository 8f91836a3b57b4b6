"""yamlcheck - YAML validation orchestration service.

Main FastAPI application with lifespan management, CORS, and global error handling.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from yamlcheck import __version__
from yamlcheck.config import get_settings
from yamlcheck.log_config import configure_logging
from yamlcheck.api.router import api_router
from yamlcheck.services.rate_limiter import FixedWindowRateLimiter
from yamlcheck.validators.engine import ValidationEngine

configure_logging(debug=get_settings().DEBUG, level=get_settings().LOG_LEVEL)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    settings = get_settings()

    # ── Startup ──
    logger.info("app_starting", debug=settings.DEBUG)

    # One engine per app: its cache and gate are shared by every request
    app.state.engine = ValidationEngine(settings)
    app.state.rate_limiter = FixedWindowRateLimiter()
    logger.info(
        "engine_ready",
        tools=[t.name for t in app.state.engine.tools],
        concurrency=app.state.engine.gate.capacity,
    )

    logger.info("app_started")

    yield

    # ── Shutdown ──
    logger.info("app_shutting_down")
    app.state.engine.reset_cache()
    logger.info("app_stopped")


# ── Create Application ──

app = FastAPI(
    title="yamlcheck",
    description=(
        "YAML validation service. Documents pass an extension/MIME guard and "
        "a safe parse check, then run through yamllint, Spectral and cfn-lint "
        "with cached, concurrency-bounded results."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ── Middleware ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Global Exception Handlers ──

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all error handler for unhandled exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again.",
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "message": str(exc)},
    )


# ── Routes ──

app.include_router(api_router, prefix="/api/v1")


# ── Root endpoint ──

@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": "yamlcheck",
        "version": __version__,
        "description": "YAML validation orchestration service",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
