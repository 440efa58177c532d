"""
Repositories package.

IMPORTANT:
- Do not instantiate repos here.
- Keep this module side-effect free.
"""

__all__ = [
    "JobStore",
    "InMemoryVideoJobsRepo",
    "PostgresVideoJobsRepo",
    "build_job_store",
]

from .base import JobStore
from .memory_jobs_repo import InMemoryVideoJobsRepo
from .video_jobs_repo import PostgresVideoJobsRepo
from .factory import build_job_store
