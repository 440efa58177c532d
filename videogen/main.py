from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI

from videogen.api import build_router
from videogen.config import settings
from videogen.db import close_pool
from videogen.logging import configure_logging
from videogen.repos import build_job_store
from videogen.services.job_service import VideoJobService


def create_app(job_service: Optional[VideoJobService] = None) -> FastAPI:
    app = FastAPI(
        title=os.getenv("SERVICE_NAME", "svc-videogen"),
        version=os.getenv("SERVICE_VERSION", os.getenv("GIT_SHA", "dev")),
        docs_url=os.getenv("DOCS_URL", "/docs"),
        redoc_url=os.getenv("REDOC_URL", "/redoc"),
        openapi_url=os.getenv("OPENAPI_URL", "/openapi.json"),
    )
    app.state.job_service = job_service

    app.include_router(build_router())

    @app.get("/")
    async def root():
        return {"service": os.getenv("SERVICE_NAME", "svc-videogen"), "status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        configure_logging()
        if app.state.job_service is not None:
            return
        store = await build_job_store(settings)
        service = VideoJobService.from_settings(settings, store)
        app.state.job_service = service
        if settings.RESUME_ACTIVE_JOBS_ON_STARTUP:
            await service.resume_active_jobs()

    @app.on_event("shutdown")
    async def on_shutdown():
        service = app.state.job_service
        if service is not None:
            await service.shutdown()
        await close_pool()

    return app


app = create_app()
