from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from portfolio_backend.config import get_settings
from portfolio_backend.models.schemas import DatabaseStatus, HealthResponse, ReadyResponse, StoreStatus
from portfolio_backend.runtime import uptime_seconds
from portfolio_backend.services.portfolio_store import PortfolioStore, get_store

router = APIRouter(tags=["health"])


@router.get("/")
async def index() -> dict:
    settings = get_settings()
    return {
        "success": True,
        "service": "Portfolio Backend",
        "version": settings.app_version,
        "environment": settings.environment,
        "pod": settings.instance_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "health": "/health",
            "ready": "/ready",
            "metrics": "/metrics",
            "projects": "/api/projects",
            "skills": "/api/skills",
            "stats": "/api/stats",
            "storage": "/api/storage",
            "logs": "/api/logs",
        },
    }


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        timestamp=datetime.now(timezone.utc),
        uptime=uptime_seconds(),
        environment=settings.environment,
    )


@router.get("/ready", response_model=ReadyResponse)
async def ready(store: PortfolioStore = Depends(get_store)) -> ReadyResponse:
    # Database connectivity is simulated; only the document store is real.
    settings = get_settings()
    return ReadyResponse(
        timestamp=datetime.now(timezone.utc),
        database=DatabaseStatus(host=settings.db_host, database=settings.db_name),
        store=StoreStatus(state=store.state or "defaulted", revision=store.revision),
    )
