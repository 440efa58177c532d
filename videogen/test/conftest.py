from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Sequence

import pytest

from videogen.domain.enums import JobStatus
from videogen.domain.models import NormalizedParams, ProviderStatus, VideoJob
from videogen.repos.base import new_job_id, utcnow
from videogen.repos.memory_jobs_repo import InMemoryVideoJobsRepo
from videogen.services.job_orchestrator import PollingPolicy, VideoJobOrchestrator
from videogen.services.job_service import VideoJobService
from videogen.services.providers.base import ProviderSubmitResult
from videogen.services.task_supervisor import TaskSupervisor


def provider_status(
    state: JobStatus,
    outputs: Sequence[str] = (),
    progress: Optional[float] = None,
    error: Optional[str] = None,
) -> ProviderStatus:
    return ProviderStatus(
        state=state,
        raw_state=state.value.upper(),
        outputs=list(outputs),
        progress_hint=progress,
        error_message=error,
    )


class FakeProvider:
    """Scripted provider: each query_status pops the next status (or raises it)."""

    provider_name = "runway"

    def __init__(
        self,
        statuses: Optional[List[Any]] = None,
        submit_error: Optional[Exception] = None,
        provider_job_id: str = "abc123",
    ) -> None:
        self.statuses = list(statuses or [])
        self.submit_error = submit_error
        self.provider_job_id = provider_job_id
        self.submitted: List[NormalizedParams] = []
        self.queries = 0
        self.cancelled: List[str] = []

    async def submit(self, params: NormalizedParams) -> ProviderSubmitResult:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(params)
        return ProviderSubmitResult(provider_job_id=self.provider_job_id, raw_response={"id": self.provider_job_id})

    async def query_status(self, provider_job_id: str) -> ProviderStatus:
        self.queries += 1
        item = self.statuses.pop(0) if self.statuses else provider_status(JobStatus.running)
        if isinstance(item, Exception):
            raise item
        return item

    async def cancel(self, provider_job_id: str) -> None:
        self.cancelled.append(provider_job_id)


async def no_sleep(seconds: float) -> None:
    return None


def blocking_sleep() -> Any:
    """A sleep that never returns, for tests that must keep a loop parked."""
    never = asyncio.Event()

    async def _sleep(seconds: float) -> None:
        await never.wait()

    return _sleep


def make_params(**overrides: Any) -> NormalizedParams:
    data = {"prompt": "a red fox in snow", "duration_seconds": 5, "ratio": "1280:720", "model_id": "gen4_turbo"}
    data.update(overrides)
    return NormalizedParams(**data)


def make_job(**overrides: Any) -> VideoJob:
    now = utcnow()
    data = {
        "job_id": new_job_id(),
        "provider_job_id": "abc123",
        "params": make_params(),
        "status": JobStatus.pending,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return VideoJob(**data)


def build_service(provider: FakeProvider, store=None, sleep=no_sleep, max_attempts: int = 60) -> VideoJobService:
    store = store or InMemoryVideoJobsRepo()
    orch = VideoJobOrchestrator(store, provider, PollingPolicy(interval_seconds=0, max_attempts=max_attempts), sleep=sleep)
    return VideoJobService(
        store=store,
        provider=provider,
        orchestrator=orch,
        supervisor=TaskSupervisor(name="test"),
        default_model_id="gen4_turbo",
    )


@pytest.fixture
def store() -> InMemoryVideoJobsRepo:
    return InMemoryVideoJobsRepo()


@pytest.fixture
def policy() -> PollingPolicy:
    return PollingPolicy(interval_seconds=0, max_attempts=60)
