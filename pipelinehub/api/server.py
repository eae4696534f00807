"""FastAPI service for CI/CD webhook ingestion.

Provides REST API endpoints for:
- Provider webhooks (GitHub, GitLab, Jenkins, generic deployments)
- Health and readiness probes
"""

from datetime import datetime, timezone

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pipelinehub import __version__
from pipelinehub.api.webhooks import router as webhooks_router
from pipelinehub.config import Settings, get_settings
from pipelinehub.services.supabase_client import close_supabase_client
from pipelinehub.utils.logging import configure_logging

logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str


# ============================================================================
# App Configuration
# ============================================================================

app = FastAPI(
    title="PipelineHub Webhook API",
    description="Ingests CI/CD pipeline and deployment webhooks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS is answered per endpoint so each provider advertises its own headers
app.include_router(webhooks_router)


# ============================================================================
# Health & Status Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/ready", tags=["Health"])
async def readiness_check(settings: Settings = Depends(get_settings)):
    """Readiness check - verifies the store is configured."""

    checks = {
        "store": settings.store_configured,
    }

    all_ready = all(checks.values())

    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "ready": all_ready,
            "checks": checks,
        },
    )


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc) if get_settings().debug else "Internal server error",
        },
    )


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup():
    """Initialize resources on startup."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info(
        "PipelineHub API starting",
        version=__version__,
        store_configured=settings.store_configured,
        default_owner_configured=settings.webhook_default_owner_id is not None,
    )


@app.on_event("shutdown")
async def shutdown():
    """Cleanup resources on shutdown."""
    logger.info("PipelineHub API shutting down")
    await close_supabase_client()


# ============================================================================
# CLI Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
