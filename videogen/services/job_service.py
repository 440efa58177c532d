from __future__ import annotations

import logging
from typing import Optional

import httpx

from videogen.config import Settings
from videogen.domain.enums import JobStatus, ProviderName
from videogen.domain.errors import JobNotFound, ProviderError
from videogen.domain.models import JobUpdate, VideoJob, VideoJobCreate
from videogen.domain.normalizer import normalize_params
from videogen.repos.base import JobStore, new_job_id, utcnow
from videogen.services.job_orchestrator import PollingPolicy, VideoJobOrchestrator
from videogen.services.providers.base import ProviderClient
from videogen.services.providers.runway.client import RunwayClient, RunwayConfig
from videogen.services.task_supervisor import TaskSupervisor

logger = logging.getLogger("video_job_service")


class VideoJobService:
    """
    Entry point for the API layer.

    create_job: normalize -> submit -> persist PENDING -> start polling (not awaited)
    get_job:    read the latest persisted record; never polls
    cancel_job: stop polling, ask the provider to cancel, mark CANCELLED
    """

    def __init__(
        self,
        store: JobStore,
        provider: ProviderClient,
        orchestrator: VideoJobOrchestrator,
        supervisor: TaskSupervisor,
        default_model_id: str,
    ) -> None:
        self.store = store
        self.provider = provider
        self.orchestrator = orchestrator
        self.supervisor = supervisor
        self.default_model_id = default_model_id

    @classmethod
    def from_settings(
        cls,
        s: Settings,
        store: JobStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "VideoJobService":
        provider = RunwayClient(RunwayConfig.from_settings(s), transport=transport)
        orchestrator = VideoJobOrchestrator(store, provider, PollingPolicy.from_settings(s))
        return cls(
            store=store,
            provider=provider,
            orchestrator=orchestrator,
            supervisor=TaskSupervisor(),
            default_model_id=s.RUNWAY_DEFAULT_MODEL,
        )

    async def create_job(self, req: VideoJobCreate) -> str:
        """
        Raises ParamValidationError before anything is persisted.

        A submit failure is recorded as a FAILED job (no polling) and then
        re-raised with `job_id` set on the ProviderError.
        """
        params = normalize_params(req, self.default_model_id)
        job_id = new_job_id()

        try:
            submit_res = await self.provider.submit(params)
        except ProviderError as e:
            now = utcnow()
            await self.store.insert(
                VideoJob(
                    job_id=job_id,
                    provider=ProviderName(self.provider.provider_name),
                    params=params,
                    status=JobStatus.failed,
                    error_message=str(e),
                    created_at=now,
                    updated_at=now,
                    completed_at=now,
                )
            )
            logger.warning(
                "job_submit_failed",
                extra={"job_id": job_id, "http_status": e.http_status, "error_code": e.code, "error": str(e)},
            )
            e.job_id = job_id
            raise

        now = utcnow()
        await self.store.insert(
            VideoJob(
                job_id=job_id,
                provider=ProviderName(self.provider.provider_name),
                provider_job_id=submit_res.provider_job_id,
                params=params,
                status=JobStatus.pending,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "job_created",
            extra={"job_id": job_id, "provider_job_id": submit_res.provider_job_id, "model": params.model_id},
        )

        self._start_polling(job_id, submit_res.provider_job_id)
        return job_id

    async def get_job(self, job_id: str) -> VideoJob:
        job = await self.store.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    async def cancel_job(self, job_id: str) -> VideoJob:
        job = await self.get_job(job_id)
        if job.is_terminal:
            return job

        self.supervisor.cancel(job_id)

        if job.provider_job_id:
            try:
                await self.provider.cancel(job.provider_job_id)
            except ProviderError as e:
                logger.warning(
                    "provider_cancel_failed",
                    extra={"job_id": job_id, "provider_job_id": job.provider_job_id, "error": str(e)},
                )

        updated = await self.store.update(job_id, JobUpdate(status=JobStatus.cancelled))
        logger.info("job_cancelled", extra={"job_id": job_id, "applied": updated is not None})
        return updated or await self.get_job(job_id)

    async def resume_active_jobs(self) -> int:
        """Restart polling for jobs left PENDING/RUNNING by a previous process."""
        resumed = 0
        for job in await self.store.list_active():
            if self.supervisor.is_running(job.job_id):
                continue
            if not job.provider_job_id:
                await self.store.update(
                    job.job_id,
                    JobUpdate(status=JobStatus.failed, error_message="provider job id missing after restart"),
                )
                continue
            self._start_polling(job.job_id, job.provider_job_id)
            resumed += 1

        if resumed:
            logger.info("jobs_resumed", extra={"count": resumed})
        return resumed

    async def shutdown(self) -> None:
        await self.supervisor.shutdown()

    def _start_polling(self, job_id: str, provider_job_id: str) -> None:
        self.supervisor.spawn(job_id, self.orchestrator.run(job_id, provider_job_id))
