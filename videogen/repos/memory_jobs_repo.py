from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from videogen.domain.enums import JobStatus
from videogen.domain.models import JobUpdate, VideoJob
from videogen.repos.base import apply_update, check_update, utcnow

logger = logging.getLogger("videogen.memory_store")


class InMemoryVideoJobsRepo:
    """
    Process-local job store. Used when no DATABASE_URL is configured and in tests.

    Records are replaced whole under a per-job lock and handed out as copies,
    so readers never observe a partially applied update.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, VideoJob] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    async def insert(self, job: VideoJob) -> VideoJob:
        async with self._lock(job.job_id):
            if job.job_id in self._jobs:
                raise ValueError(f"duplicate job_id: {job.job_id}")
            self._jobs[job.job_id] = job.model_copy(deep=True)
        return job.model_copy(deep=True)

    async def update(self, job_id: str, changes: JobUpdate) -> Optional[VideoJob]:
        check_update(changes)
        async with self._lock(job_id):
            current = self._jobs.get(job_id)
            if current is None:
                logger.warning("job_update_missing", extra={"job_id": job_id})
                return None
            updated = apply_update(current, changes, utcnow())
            if updated is None:
                return None
            self._jobs[job_id] = updated
        return updated.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[VideoJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def list_active(self, limit: int = 500) -> List[VideoJob]:
        active = [
            j.model_copy(deep=True)
            for j in self._jobs.values()
            if j.status in (JobStatus.pending, JobStatus.running)
        ]
        active.sort(key=lambda j: j.created_at)
        return active[:limit]
