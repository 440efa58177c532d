from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from videogen.domain.enums import JobStatus
from videogen.domain.models import JobUpdate, VideoJob
from videogen.domain.state import resolve_transition


class JobStore(Protocol):
    async def insert(self, job: VideoJob) -> VideoJob: ...
    async def update(self, job_id: str, changes: JobUpdate) -> Optional[VideoJob]: ...
    async def get(self, job_id: str) -> Optional[VideoJob]: ...
    async def list_active(self, limit: int = 500) -> List[VideoJob]: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return str(uuid.uuid4())


def check_update(changes: JobUpdate) -> None:
    if changes.status == JobStatus.succeeded and not changes.outputs:
        raise ValueError("succeeded update requires at least one output")


def apply_update(job: VideoJob, changes: JobUpdate, now: datetime) -> Optional[VideoJob]:
    """
    Pure version of the guarded update every JobStore performs atomically.

    Returns None when the job is terminal (nothing may change any more).
    """
    if job.is_terminal:
        return None

    status = resolve_transition(job.status, changes.status) if changes.status else job.status
    data = {"status": status, "updated_at": max(now, job.created_at)}

    if changes.provider_job_id and not job.provider_job_id:
        data["provider_job_id"] = changes.provider_job_id

    if status == JobStatus.succeeded:
        data["progress"] = 1.0
        data["outputs"] = list(changes.outputs or [])
    elif changes.progress is not None:
        data["progress"] = max(job.progress, changes.progress)

    if status == JobStatus.failed:
        data["error_message"] = changes.error_message or "failed"

    if job.status != status and status in (JobStatus.succeeded, JobStatus.failed, JobStatus.cancelled):
        data["completed_at"] = now

    return job.model_copy(update=data, deep=True)
