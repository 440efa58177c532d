from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from videogen.config import settings
from videogen.services.job_service import VideoJobService


def check_video_enabled() -> bool:
    if not settings.VIDEO_STUDIO_ENABLED:
        raise HTTPException(status_code=403, detail="video_generation_disabled")
    return True


RequireVideoEnabled = Depends(check_video_enabled)


def get_job_service(request: Request) -> VideoJobService:
    service = getattr(request.app.state, "job_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="service_not_ready")
    return service
