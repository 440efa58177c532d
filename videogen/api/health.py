from __future__ import annotations

import os

from fastapi import APIRouter, Request

from videogen.config import settings
from videogen.logging import SERVICE_NAME

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request):
    service = getattr(request.app.state, "job_service", None)
    return {
        "status": "ok" if service is not None else "starting",
        "service": SERVICE_NAME,
        "version": os.getenv("SERVICE_VERSION", "dev"),
        "video_enabled": settings.VIDEO_STUDIO_ENABLED,
        "provider": service.provider.provider_name if service is not None else None,
        "provider_configured": bool(settings.RUNWAY_API_KEY),
        "store": "postgres" if settings.DATABASE_URL else "memory",
        "active_polls": service.supervisor.active_count if service is not None else 0,
    }
