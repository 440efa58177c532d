from __future__ import annotations

import logging

from videogen.config import Settings
from videogen.db import get_pool
from videogen.repos.base import JobStore
from videogen.repos.memory_jobs_repo import InMemoryVideoJobsRepo
from videogen.repos.video_jobs_repo import PostgresVideoJobsRepo

logger = logging.getLogger("videogen.store")


async def build_job_store(s: Settings) -> JobStore:
    """Postgres when DATABASE_URL is configured, else process-local memory."""
    if s.DATABASE_URL:
        repo = PostgresVideoJobsRepo(await get_pool())
        await repo.ensure_schema()
        logger.info("Using Postgres job store")
        return repo

    logger.warning("DATABASE_URL is not set; using in-memory job store (jobs are lost on restart)")
    return InMemoryVideoJobsRepo()
