from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from videogen.config import Settings
from videogen.domain.enums import JobStatus
from videogen.domain.errors import ProviderError, ProviderTimeout
from videogen.domain.models import JobUpdate, ProviderStatus, VideoJob
from videogen.repos.base import JobStore
from videogen.services.providers.base import ProviderClient

logger = logging.getLogger("video_orchestrator")

POLLING_TIMEOUT_MESSAGE = "polling timeout"

# Estimated progress never reaches 1.0 before the provider says it is done.
PROGRESS_CAP = 0.99


@dataclass(frozen=True)
class PollingPolicy:
    interval_seconds: float = 5.0
    max_attempts: int = 60

    @classmethod
    def from_settings(cls, s: Settings) -> "PollingPolicy":
        return cls(interval_seconds=s.JOB_POLL_INTERVAL_SECONDS, max_attempts=s.JOB_POLL_MAX_ATTEMPTS)


class VideoJobOrchestrator:
    """
    Per-job polling loop.

    After a successful submit the job is observed every `interval_seconds`,
    at most `max_attempts` times. Each observation is written to the job store;
    a terminal observation ends the loop. Failed observations (timeouts,
    transport errors, provider error responses) are skipped. When the budget
    runs out the job is forced to FAILED with "polling timeout".

    Nothing raised inside the loop reaches a caller; the job record is the
    only place failures show up.
    """

    def __init__(
        self,
        store: JobStore,
        provider: ProviderClient,
        policy: PollingPolicy,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.provider = provider
        self.policy = policy
        self._sleep = sleep

    async def run(self, job_id: str, provider_job_id: str) -> None:
        """Entry point handed to the task supervisor."""
        try:
            await self.poll_until_terminal(job_id, provider_job_id)
        except asyncio.CancelledError:
            logger.info("poll_loop_cancelled", extra={"job_id": job_id, "provider_job_id": provider_job_id})
            raise
        except Exception as e:
            logger.exception(
                "poll_loop_crashed",
                extra={"job_id": job_id, "provider_job_id": provider_job_id, "error": str(e)},
            )
            # never leave a job stuck in pending/running
            await self.store.update(
                job_id,
                JobUpdate(status=JobStatus.failed, error_message=f"internal error: {type(e).__name__}: {e}"),
            )

    async def poll_until_terminal(self, job_id: str, provider_job_id: str) -> Optional[VideoJob]:
        max_attempts = self.policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            await self._sleep(self.policy.interval_seconds)

            try:
                observed = await self.provider.query_status(provider_job_id)
            except ProviderTimeout as e:
                logger.warning(
                    "poll_skipped_timeout",
                    extra={"job_id": job_id, "provider_job_id": provider_job_id, "attempt": attempt, "error": str(e)},
                )
                continue
            except ProviderError as e:
                logger.warning(
                    "poll_skipped_provider_error",
                    extra={
                        "job_id": job_id,
                        "provider_job_id": provider_job_id,
                        "attempt": attempt,
                        "http_status": e.http_status,
                        "error": str(e),
                    },
                )
                continue

            job = await self.apply_observation(job_id, observed, attempt)
            if job is None:
                # terminal already (e.g. cancelled) or gone
                logger.info("poll_loop_stopped_externally", extra={"job_id": job_id, "attempt": attempt})
                return await self.store.get(job_id)

            if job.is_terminal:
                logger.info(
                    "job_terminal",
                    extra={
                        "job_id": job_id,
                        "provider_job_id": provider_job_id,
                        "status": job.status.value,
                        "attempt": attempt,
                    },
                )
                return job

        logger.warning(
            "poll_budget_exhausted",
            extra={"job_id": job_id, "provider_job_id": provider_job_id, "attempts": max_attempts},
        )
        return await self.expire_job(job_id)

    async def apply_observation(self, job_id: str, observed: ProviderStatus, attempt: int) -> Optional[VideoJob]:
        state = observed.state

        if state == JobStatus.succeeded:
            if not observed.outputs:
                changes = JobUpdate(
                    status=JobStatus.failed,
                    error_message="provider reported success without outputs",
                )
            else:
                changes = JobUpdate(status=JobStatus.succeeded, outputs=list(observed.outputs))
        elif state == JobStatus.failed:
            changes = JobUpdate(status=JobStatus.failed, error_message=observed.error_message or "provider failed")
        elif state == JobStatus.cancelled:
            changes = JobUpdate(status=JobStatus.cancelled)
        else:
            changes = JobUpdate(status=state, progress=self.estimate_progress(observed.progress_hint, attempt))

        return await self.store.update(job_id, changes)

    def estimate_progress(self, hint: Optional[float], attempt: int) -> float:
        if hint is not None:
            return min(max(hint, 0.0), PROGRESS_CAP)
        return min(attempt / max(1, self.policy.max_attempts), PROGRESS_CAP)

    async def expire_job(self, job_id: str) -> Optional[VideoJob]:
        """
        Force a non-terminal job to FAILED("polling timeout").

        Returns None and changes nothing when the job is already terminal.
        """
        job = await self.store.update(
            job_id,
            JobUpdate(status=JobStatus.failed, error_message=POLLING_TIMEOUT_MESSAGE),
        )
        if job is None:
            logger.info("expire_noop", extra={"job_id": job_id})
        return job
