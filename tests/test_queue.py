"""GenerationQueue tests: submit, serial processing, resume, removal and cleanup."""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from illustrate.core.secrets import SettingsSecretProvider
from illustrate.core.timezone import utcnow
from illustrate.models.job import Job, JobStatus
from illustrate.repositories.job import JobRepository
from illustrate.services.artifacts.pipeline import ArtifactPipeline
from illustrate.services.exceptions import ErrorCode, UnknownModel
from illustrate.services.generation.contracts import GenerationRequest
from illustrate.services.generation.orchestrator import GenerationOrchestrator
from illustrate.services.providers.resolver import AdapterResolver
from illustrate.services.registry.models import ModelRegistry
from illustrate.services.transport import BinaryImage, JsonObject
from illustrate.workers.queue_engine import INVALID_REQUEST_DATA, GenerationQueue


def _build_queue(transport, store, uow_factory, settings) -> GenerationQueue:
    resolver = AdapterResolver(ModelRegistry(), transport, poll_interval_scale=0)
    orchestrator = GenerationOrchestrator(resolver, ArtifactPipeline(store), uow_factory)
    return GenerationQueue(
        uow_factory,
        orchestrator,
        resolver,
        settings,
        secrets=SettingsSecretProvider(settings),
    )


@pytest_asyncio.fixture
async def queue(fake_transport, store, uow_factory, settings):
    queue = _build_queue(fake_transport, store, uow_factory, settings)
    yield queue
    await queue.stop()


async def _insert(uow_factory, **fields) -> Job:
    job = Job(**fields)
    async with await uow_factory() as uow:
        await uow.jobs.add(job)
    return job


async def _wait_until_finished(queue: GenerationQueue, job_id, timeout: float = 5.0) -> Job | None:
    async def poll():
        while True:
            job = await queue.get_job(job_id)
            if job is None or job.status != JobStatus.IN_PROGRESS:
                return job
            await asyncio.sleep(0.01)

    return await asyncio.wait_for(poll(), timeout)


@pytest.mark.asyncio
async def test_flux_schnell_job_runs_to_success(queue, fake_transport, uow_factory, png_bytes):
    fake_transport.responses = [
        JsonObject(201, {"id": "p1", "status": "starting"}),
        JsonObject(200, {"id": "p1", "status": "succeeded", "output": ["https://cdn/p1.png"]}),
    ]
    fake_transport.downloads["https://cdn/p1.png"] = png_bytes
    request = GenerationRequest(model_id="flux-schnell", prompt="a lighthouse in fog")

    job = await queue.submit(request.with_secret("r8_user"))
    assert job.status == JobStatus.IN_PROGRESS
    assert "secret" not in job.request_data

    assert await queue.process_pending() == 1

    finished = await queue.get_job(job.id)
    assert finished.status == JobStatus.SUCCESSFUL
    assert finished.error_code is None

    async with await uow_factory() as uow:
        generations = await uow.generations.get_by_set(finished.set_id)
    assert len(generations) == 1
    assert fake_transport.calls[0]["headers"]["Authorization"] == "Bearer r8_user"


@pytest.mark.asyncio
async def test_unknown_model_is_rejected_and_not_persisted(queue, fake_transport):
    with pytest.raises(UnknownModel):
        await queue.submit(GenerationRequest(model_id="no-such-model", prompt="x"))

    assert await queue.list_jobs() == []
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_malformed_request_data_fails_the_job(queue, uow_factory):
    job = await _insert(uow_factory, model_id="flux-schnell", request_data={"prompt": 12})

    await queue.process_pending()

    failed = await queue.get_job(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error_code == ErrorCode.GENERATOR_ERROR.value
    assert failed.error_message == INVALID_REQUEST_DATA


@pytest.mark.asyncio
async def test_backend_failure_is_recorded_on_the_job(queue, fake_transport):
    fake_transport.responses = [JsonObject(200, {"error": "Model is loading"})]

    job = await queue.submit(GenerationRequest(model_id="hf-flux-dev", prompt="x"))
    await queue.process_pending()

    failed = await queue.get_job(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error_code == ErrorCode.MODEL_ERROR.value
    assert failed.error_message == "Model is loading"
    assert failed.set_id is None


@pytest.mark.asyncio
async def test_jobs_run_oldest_first(queue, fake_transport, uow_factory, png_bytes):
    fake_transport.default = BinaryImage(200, png_bytes, "image/png")
    now = utcnow()
    for offset, prompt in ((2, "second"), (0, "third"), (5, "first")):
        request = GenerationRequest(model_id="hf-flux-dev", prompt=prompt)
        await _insert(
            uow_factory,
            model_id=request.model_id,
            request_data=request.to_storage(),
            created_at=now - timedelta(seconds=offset),
        )

    assert await queue.process_pending() == 3

    prompts = [call["body"]["inputs"] for call in fake_transport.calls]
    assert prompts == ["first", "second", "third"]
    assert [job.request_data["prompt"] for job in await queue.list_jobs()] == [
        "third",
        "second",
        "first",
    ]


@pytest.mark.asyncio
async def test_restarted_queue_resumes_with_configured_secret(
    fake_transport, store, uow_factory, settings, png_bytes
):
    """A job left in progress by a previous process runs once the queue starts."""
    fake_transport.responses = [
        JsonObject(201, {"id": "p9", "status": "starting"}),
        JsonObject(200, {"id": "p9", "status": "succeeded", "output": "https://cdn/p9.png"}),
    ]
    fake_transport.downloads["https://cdn/p9.png"] = png_bytes
    request = GenerationRequest(model_id="flux-dev", prompt="left over")
    job = await _insert(uow_factory, model_id="flux-dev", request_data=request.to_storage())

    queue = _build_queue(fake_transport, store, uow_factory, settings)
    try:
        assert await queue.start() == 1
        assert queue.running
        finished = await _wait_until_finished(queue, job.id)
    finally:
        await queue.stop()

    assert finished.status == JobStatus.SUCCESSFUL
    assert fake_transport.calls[0]["headers"]["Authorization"] == "Bearer r8_test"
    assert not queue.running


@pytest.mark.asyncio
async def test_running_worker_picks_up_new_submissions(queue, fake_transport, png_bytes):
    fake_transport.default = BinaryImage(200, png_bytes, "image/png")
    assert await queue.start() == 0

    job = await queue.submit(GenerationRequest(model_id="hf-flux-schnell", prompt="x"))
    finished = await _wait_until_finished(queue, job.id)

    assert finished.status == JobStatus.SUCCESSFUL


@pytest.mark.asyncio
async def test_removing_the_running_job_cancels_it(store, uow_factory, settings, png_bytes):
    entered = asyncio.Event()
    release = asyncio.Event()

    class BlockingTransport:
        calls = 0

        async def perform(self, url, **kwargs):
            BlockingTransport.calls += 1
            entered.set()
            await release.wait()
            return BinaryImage(200, png_bytes, "image/png")

    queue = _build_queue(BlockingTransport(), store, uow_factory, settings)
    job = await queue.submit(GenerationRequest(model_id="hf-flux-dev", prompt="x", count=2))

    worker = asyncio.create_task(queue.process_pending())
    await asyncio.wait_for(entered.wait(), 5)

    assert await queue.remove(job.id) is True
    assert await asyncio.wait_for(worker, 5) == 1

    assert await queue.get_job(job.id) is None
    async with await uow_factory() as uow:
        assert await uow.sets.count() == 0
    assert list(store.root.iterdir()) == []


@pytest.mark.asyncio
async def test_remove_missing_job_returns_false(queue):
    job = Job(model_id="flux-schnell")

    assert await queue.remove(job.id) is False


@pytest.mark.asyncio
async def test_cleanup_deletes_only_stale_failures(queue, uow_factory):
    now = utcnow()
    stale = await _insert(
        uow_factory,
        model_id="flux-schnell",
        status=JobStatus.FAILED,
        updated_at=now - timedelta(seconds=301),
    )
    recent = await _insert(
        uow_factory,
        model_id="flux-schnell",
        status=JobStatus.FAILED,
        updated_at=now - timedelta(seconds=10),
    )
    old_success = await _insert(
        uow_factory,
        model_id="flux-schnell",
        status=JobStatus.SUCCESSFUL,
        updated_at=now - timedelta(hours=2),
    )

    assert await queue.cleanup_stale_failures(now) == 1

    remaining = {job.id for job in await queue.list_jobs()}
    assert stale.id not in remaining
    assert remaining == {recent.id, old_success.id}


@pytest.mark.asyncio
async def test_clear_by_status(queue, uow_factory):
    await _insert(uow_factory, model_id="flux-schnell", status=JobStatus.SUCCESSFUL)
    await _insert(uow_factory, model_id="flux-schnell", status=JobStatus.SUCCESSFUL)
    await _insert(uow_factory, model_id="flux-schnell", status=JobStatus.FAILED)
    pending = await _insert(uow_factory, model_id="flux-schnell")

    assert await queue.clear_successful() == 2
    assert await queue.clear_failed() == 1
    assert [job.id for job in await queue.list_jobs()] == [pending.id]


@pytest.mark.asyncio
async def test_failed_job_is_swept_once_past_retention(queue, uow_factory):
    job = await queue.submit(GenerationRequest(model_id="flux-schnell", prompt="x"))
    assert job.created_at.tzinfo is not None

    async with await uow_factory() as uow:
        stored = await uow.jobs.get_by_id(job.id)
        stored.mark_failed("Model is loading")
        await uow.jobs.save(stored)
    failed_at = stored.updated_at

    assert await queue.cleanup_stale_failures(failed_at + timedelta(seconds=299)) == 0
    assert await queue.cleanup_stale_failures(failed_at + timedelta(seconds=301)) == 1
    assert await queue.get_job(job.id) is None


@pytest.mark.asyncio
async def test_remove_waits_for_the_final_status_write(
    queue, fake_transport, monkeypatch, png_bytes
):
    """Removing a job while its outcome is being written deletes it cleanly afterwards."""
    fake_transport.default = BinaryImage(200, png_bytes, "image/png")
    saving = asyncio.Event()
    release = asyncio.Event()
    original_save = JobRepository.save

    async def slow_save(self, job):
        saving.set()
        await release.wait()
        return await original_save(self, job)

    monkeypatch.setattr(JobRepository, "save", slow_save)
    job = await queue.submit(GenerationRequest(model_id="hf-flux-dev", prompt="x"))

    worker = asyncio.create_task(queue.process_pending())
    await asyncio.wait_for(saving.wait(), 5)
    remover = asyncio.create_task(queue.remove(job.id))
    await asyncio.sleep(0.05)
    assert not remover.done()

    release.set()
    assert await asyncio.wait_for(worker, 5) == 1
    assert await asyncio.wait_for(remover, 5) is True
    assert await queue.get_job(job.id) is None


@pytest.mark.asyncio
async def test_job_removed_before_it_starts_is_skipped(queue, fake_transport, uow_factory):
    job = await queue.submit(GenerationRequest(model_id="hf-flux-dev", prompt="x"))
    async with await uow_factory() as uow:
        stale_copy = await uow.jobs.get_by_id(job.id)
    await queue.remove(job.id)

    await queue._process(stale_copy)

    assert fake_transport.calls == []
    assert await queue.list_jobs() == []


@pytest.mark.asyncio
async def test_set_of_job_deleted_after_completion_is_dropped(
    queue, fake_transport, uow_factory, store, png_bytes
):
    fake_transport.default = BinaryImage(200, png_bytes, "image/png")
    run_job = queue.orchestrator.run_job

    async def run_then_lose_row(request, set_type=None):
        outcome = await run_job(request, set_type)
        async with await uow_factory() as uow:
            await uow.jobs.delete(job.id)
        return outcome

    queue.orchestrator.run_job = run_then_lose_row
    job = await queue.submit(GenerationRequest(model_id="hf-flux-dev", prompt="x"))

    assert await queue.process_pending() == 1

    assert await queue.list_jobs() == []
    async with await uow_factory() as uow:
        assert await uow.sets.count() == 0
    assert list(store.root.iterdir()) == []
