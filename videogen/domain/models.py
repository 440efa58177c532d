from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from videogen.domain.enums import TERMINAL_STATUSES, JobStatus, ProviderName


# -----------------------------------------------------------------------------
# Create (raw caller input; normalizer owns validation)
# -----------------------------------------------------------------------------

class VideoJobCreate(BaseModel):
    """
    UI -> svc-videogen contract.

    Values are deliberately loose here; videogen.domain.normalizer turns
    them into provider-accepted values or raises ParamValidationError.
    """

    prompt: Optional[str] = None
    # Any: lax coercion would turn JSON true into 1 before the normalizer sees it
    duration: Any = 5
    ratio: Optional[str] = "16:9"
    model: Optional[str] = None
    image_url: Optional[str] = None


class NormalizedParams(BaseModel):
    prompt: str = Field(max_length=980)
    duration_seconds: int = Field(gt=0)
    ratio: str
    model_id: str
    image_url: Optional[str] = None


# -----------------------------------------------------------------------------
# Record
# -----------------------------------------------------------------------------

class VideoJob(BaseModel):
    job_id: str
    provider: ProviderName = ProviderName.runway
    provider_job_id: Optional[str] = None
    params: NormalizedParams
    status: JobStatus = JobStatus.pending
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    outputs: List[str] = Field(default_factory=list)
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def primary_output(self) -> Optional[str]:
        return self.outputs[0] if self.outputs else None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class JobUpdate(BaseModel):
    """Partial change applied atomically by a JobStore. None means untouched."""

    provider_job_id: Optional[str] = None
    status: Optional[JobStatus] = None
    progress: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    outputs: Optional[List[str]] = None
    error_message: Optional[str] = None


# -----------------------------------------------------------------------------
# Provider observation
# -----------------------------------------------------------------------------

class ProviderStatus(BaseModel):
    state: JobStatus
    raw_state: Optional[str] = None
    outputs: List[str] = Field(default_factory=list)
    progress_hint: Optional[float] = None
    error_message: Optional[str] = None
    raw_response: Optional[Any] = None


# -----------------------------------------------------------------------------
# View
# -----------------------------------------------------------------------------

class VideoJobView(BaseModel):
    job_id: str
    status: str
    provider_job_id: Optional[str] = None
    progress: float = 0.0
    video_url: Optional[str] = None
    outputs: List[str] = Field(default_factory=list)
    params: Optional[NormalizedParams] = None

    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: VideoJob) -> "VideoJobView":
        return cls(
            job_id=job.job_id,
            status=job.status.value,
            provider_job_id=job.provider_job_id,
            progress=job.progress,
            video_url=job.primary_output,
            outputs=list(job.outputs),
            params=job.params,
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )
