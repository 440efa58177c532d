from __future__ import annotations

from fastapi import APIRouter

from videogen.api.health import router as health_router
from videogen.api.routes.video_jobs import router as video_jobs_router


def build_router() -> APIRouter:
    r = APIRouter()
    r.include_router(health_router)
    r.include_router(video_jobs_router)
    return r
