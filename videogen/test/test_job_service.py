import asyncio

import pytest

from videogen.domain.enums import JobStatus
from videogen.domain.errors import JobNotFound, ParamValidationError, ProviderError
from videogen.domain.models import VideoJobCreate

from conftest import FakeProvider, blocking_sleep, build_service, make_job, provider_status


def _req(**overrides):
    data = {"prompt": "a lighthouse at dusk", "duration": 5, "ratio": "16:9", "model": "Gen-4 Turbo"}
    data.update(overrides)
    return VideoJobCreate(**data)


@pytest.mark.asyncio
async def test_create_job_end_to_end():
    provider = FakeProvider(
        statuses=[
            provider_status(JobStatus.running),
            provider_status(JobStatus.succeeded, outputs=["https://x/video.mp4"]),
        ]
    )
    service = build_service(provider)

    job_id = await service.create_job(_req())

    # returned before polling ran
    job = await service.get_job(job_id)
    assert job.status == JobStatus.pending
    assert job.provider_job_id == "abc123"
    assert job.params.ratio == "1280:720"
    assert job.params.model_id == "gen4_turbo"
    assert job.outputs == []
    assert job.completed_at is None
    assert provider.queries == 0

    await service.supervisor.get_task(job_id)

    job = await service.get_job(job_id)
    assert job.status == JobStatus.succeeded
    assert job.outputs == ["https://x/video.mp4"]
    assert job.completed_at is not None
    assert service.supervisor.active_count == 0


@pytest.mark.asyncio
async def test_validation_error_persists_nothing():
    provider = FakeProvider()
    service = build_service(provider)

    with pytest.raises(ParamValidationError) as ei:
        await service.create_job(_req(ratio="21:9"))

    assert ei.value.code == ParamValidationError.UNSUPPORTED_RATIO
    assert provider.submitted == []
    assert await service.store.list_active() == []


@pytest.mark.asyncio
async def test_submit_failure_records_failed_job_without_polling():
    body = '{"error":"Invalid API key"}'
    provider = FakeProvider(
        submit_error=ProviderError(f"Runway submit failed 401: {body}", http_status=401, body=body)
    )
    service = build_service(provider)

    with pytest.raises(ProviderError) as ei:
        await service.create_job(_req())

    job_id = ei.value.job_id
    assert job_id

    job = await service.get_job(job_id)
    assert job.status == JobStatus.failed
    assert "Invalid API key" in job.error_message
    assert job.provider_job_id is None
    assert job.completed_at is not None
    assert job.outputs == []
    assert service.supervisor.active_count == 0
    assert provider.queries == 0


@pytest.mark.asyncio
async def test_get_job_not_found():
    service = build_service(FakeProvider())
    with pytest.raises(JobNotFound):
        await service.get_job("missing")


@pytest.mark.asyncio
async def test_get_job_never_polls():
    provider = FakeProvider()
    service = build_service(provider, sleep=blocking_sleep())
    job_id = await service.create_job(_req())

    for _ in range(3):
        await service.get_job(job_id)
        await asyncio.sleep(0)

    assert provider.queries == 0
    await service.shutdown()


@pytest.mark.asyncio
async def test_cancel_job_stops_polling():
    provider = FakeProvider()
    service = build_service(provider, sleep=blocking_sleep())
    job_id = await service.create_job(_req())
    task = service.supervisor.get_task(job_id)
    await asyncio.sleep(0)

    job = await service.cancel_job(job_id)

    assert job.status == JobStatus.cancelled
    assert job.completed_at is not None
    assert job.error_message is None
    assert provider.cancelled == ["abc123"]

    await asyncio.gather(task, return_exceptions=True)
    assert task.cancelled()
    assert service.supervisor.active_count == 0


@pytest.mark.asyncio
async def test_cancel_terminal_job_is_noop():
    provider = FakeProvider()
    service = build_service(provider)
    job = await service.store.insert(make_job(status=JobStatus.failed, error_message="x"))

    same = await service.cancel_job(job.job_id)

    assert same == job
    assert provider.cancelled == []


@pytest.mark.asyncio
async def test_cancel_survives_provider_cancel_error():
    provider = FakeProvider()

    async def broken_cancel(provider_job_id):
        raise ProviderError("Runway cancel failed 500: oops", http_status=500, body="oops")

    provider.cancel = broken_cancel
    service = build_service(provider)
    job = await service.store.insert(make_job())

    cancelled = await service.cancel_job(job.job_id)
    assert cancelled.status == JobStatus.cancelled


@pytest.mark.asyncio
async def test_resume_active_jobs():
    provider = FakeProvider(statuses=[provider_status(JobStatus.succeeded, outputs=["https://x/v.mp4"])])
    service = build_service(provider)
    resumable = await service.store.insert(make_job())
    orphan = await service.store.insert(make_job(provider_job_id=None))
    await service.store.insert(make_job(status=JobStatus.cancelled))

    assert await service.resume_active_jobs() == 1
    await service.supervisor.get_task(resumable.job_id)

    assert (await service.get_job(resumable.job_id)).status == JobStatus.succeeded
    orphan_now = await service.get_job(orphan.job_id)
    assert orphan_now.status == JobStatus.failed
    assert orphan_now.completed_at is not None
