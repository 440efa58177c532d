from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from videogen.api.deps import RequireVideoEnabled, get_job_service
from videogen.domain.errors import JobNotFound, ParamValidationError, ProviderError
from videogen.domain.models import VideoJobCreate, VideoJobView
from videogen.services.job_service import VideoJobService

logger = logging.getLogger("video_jobs")

router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.post(
    "/jobs",
    dependencies=[RequireVideoEnabled],
    response_model=VideoJobView,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_job(
    req: VideoJobCreate,
    service: VideoJobService = Depends(get_job_service),
) -> VideoJobView:
    try:
        job_id = await service.create_job(req)
    except ParamValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": e.code, "message": e.message},
        )
    except ProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": e.code or "PROVIDER_ERROR", "message": str(e), "job_id": e.job_id},
        )

    job = await service.get_job(job_id)
    return VideoJobView.from_job(job)


@router.get("/jobs/{job_id}", dependencies=[RequireVideoEnabled], response_model=VideoJobView)
async def get_job(job_id: str, service: VideoJobService = Depends(get_job_service)) -> VideoJobView:
    try:
        job = await service.get_job(job_id)
    except JobNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return VideoJobView.from_job(job)


@router.post("/jobs/{job_id}/cancel", dependencies=[RequireVideoEnabled], response_model=VideoJobView)
async def cancel_job(job_id: str, service: VideoJobService = Depends(get_job_service)) -> VideoJobView:
    try:
        job = await service.cancel_job(job_id)
    except JobNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return VideoJobView.from_job(job)
