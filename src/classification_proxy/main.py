"""
FastAPI application entry point for the Classification Proxy.
"""

import re
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from classification_proxy.api.dependencies import get_llm_client, get_orchestrator, get_sweeper
from classification_proxy.api.error_handlers import EXCEPTION_HANDLERS
from classification_proxy.api.middleware import (
    BodySizeLimitMiddleware,
    RequestTracingMiddleware,
    SecurityHeadersMiddleware,
)
from classification_proxy.api.routes import router
from classification_proxy.config import settings
from classification_proxy.logging_config import configure_logging, mask_secret

# Configure structured logging before any other imports
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)


def origins_to_regex(patterns: list[str]) -> Optional[str]:
    """
    Turn origin patterns with ``*`` wildcards into one anchored regex.

    ``chrome-extension://*`` matches any extension origin.
    """
    if not patterns:
        return None
    parts = [re.escape(p.strip()).replace(r"\*", ".*") for p in patterns if p.strip()]
    return f"^(?:{'|'.join(parts)})$" if parts else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start maintenance sweeps on startup; stop them and release clients on shutdown."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        model_endpoint=settings.MODEL_ENDPOINT,
        model=settings.MODEL_NAME,
        api_key=mask_secret(
            settings.MODEL_API_KEY.get_secret_value() if settings.MODEL_API_KEY else None
        ),
    )
    if settings.MODEL_API_KEY is None:
        logger.warning("MODEL_API_KEY not set, every classification will fail open")

    sweeper = get_sweeper()
    if settings.ENABLE_MAINTENANCE_TASKS:
        await sweeper.start()

    logger.info("Application startup complete")
    try:
        yield
    finally:
        logger.info("Application shutdown")
        await sweeper.stop()
        await get_orchestrator().close()
        await get_llm_client().close()
        logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Classification Proxy",
    description="Preference-aware ALLOW/BLOCK content classification with caching and quotas",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Innermost: oversized bodies are rejected before any route parses them
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_PAYLOAD_SIZE_BYTES)

# Request tracing middleware (wraps the size check so rejections carry a request_id)
app.add_middleware(RequestTracingMiddleware)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=origins_to_regex(settings.ALLOWED_ORIGINS),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Register exception handlers
for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(router, tags=["proxy"])


# Prometheus metrics instrumentation
if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "classification_proxy.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
