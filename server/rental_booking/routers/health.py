"""Health, readiness and service info routes."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.dependencies import get_draft_store
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus
from ..services.draft_store import DraftStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping(store: DraftStore = Depends(get_draft_store)) -> JSONResponse:
    """
    Health check endpoint.

    Returns current service status, timestamp, and the number of live drafts.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
        active_drafts=len(store),
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


service_router = APIRouter(tags=["Health"])


def _service_summary() -> Dict[str, Any]:
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "environment": settings.environment}


@service_router.get("/health", summary="Liveness check")
async def liveness() -> Dict[str, Any]:
    return {"status": "healthy", **_service_summary(), "debug": settings.debug}


@service_router.get("/ready", summary="Readiness check")
async def readiness(request: Request) -> Dict[str, Any]:
    """Ready once the lifespan has created the draft store and backend client."""
    checks = {
        name: "ok" if getattr(request.app.state, name, None) is not None else "missing"
        for name in ("draft_store", "rental_api_client")
    }
    ready = all(value == "ok" for value in checks.values())
    return {"status": "ready" if ready else "starting", "service": SERVICE_NAME, "checks": checks}


@service_router.get("/info", tags=["Info"], summary="Service information")
async def service_info() -> Dict[str, Any]:
    return {
        **_service_summary(),
        "description": "Booking composition and pricing for the vehicle rental dashboard",
        "rental_api_base_url": settings.rental_api_base_url,
        "features": {
            "stale_quote_guard": True,
            "tracing": settings.otlp_endpoint is not None,
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }
