"""Generation queue: persisted jobs processed one at a time, oldest first.

Jobs survive restarts. Anything still ``in_progress`` when the engine starts
is picked up again by the worker loop. A separate timer sweeps failed jobs
once they are older than the retention window.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import structlog
from pydantic import SecretStr, ValidationError

from illustrate.core.config import Settings
from illustrate.core.secrets import SecretProvider
from illustrate.core.timezone import utcnow
from illustrate.models.generation import SetType
from illustrate.models.job import Job, JobStatus
from illustrate.services.exceptions import ErrorCode, UnknownModel
from illustrate.services.generation.contracts import GenerationRequest, JobOutcome
from illustrate.services.generation.orchestrator import GenerationOrchestrator
from illustrate.services.providers.resolver import AdapterResolver

logger = structlog.get_logger(__name__)

INVALID_REQUEST_DATA = "Invalid request data"


class GenerationQueue:
    """Serial job queue backed by the ``queue_jobs`` table."""

    def __init__(
        self,
        uow_factory: Callable,
        orchestrator: GenerationOrchestrator,
        resolver: AdapterResolver,
        settings: Settings,
        secrets: SecretProvider | None = None,
    ):
        """Initialize queue.

        Args:
            uow_factory: Factory returning UnitOfWork instances
            orchestrator: Runs a job's fan-out and persists its set
            resolver: Validates model ids on submit
            settings: Retention and cleanup intervals
            secrets: SecretProvider used when a job has no in-memory secret
        """
        self.uow_factory = uow_factory
        self.orchestrator = orchestrator
        self.resolver = resolver
        self.settings = settings
        self.secrets = secrets

        self._lock = asyncio.Lock()
        # Every queue_jobs write goes through this lock; held only for the write itself
        self._write_lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._worker: asyncio.Task | None = None
        self._cleanup: asyncio.Task | None = None
        self._active_job_id: UUID | None = None
        self._active_task: asyncio.Task | None = None
        self._removed: set[UUID] = set()
        # Secrets passed to submit() live only in memory, never in the job row
        self._job_secrets: dict[UUID, SecretStr] = {}

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> int:
        """Resume persisted work and launch the worker and cleanup loops.

        Returns:
            Number of in-progress jobs found on startup
        """
        async with await self.uow_factory() as uow:
            pending = await uow.jobs.list_in_progress()

        if pending:
            logger.info("queue.resumed", pending_jobs=len(pending))
            self._wake.set()

        if not self.running:
            self._worker = asyncio.create_task(self._run_worker())
            self._cleanup = asyncio.create_task(self._run_cleanup())
        return len(pending)

    async def stop(self) -> None:
        """Cancel the loops and wait for them to exit."""
        tasks = [t for t in (self._worker, self._cleanup) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._worker = None
        self._cleanup = None

    async def submit(self, request: GenerationRequest, set_type: SetType | None = None) -> Job:
        """Persist a new in-progress job and wake the worker.

        Raises:
            UnknownModel: Model id is not resolvable; nothing is persisted
        """
        adapter = self.resolver.resolve(request.model_id)
        job = Job(
            model_id=request.model_id,
            set_type=set_type or adapter.model.set_type,
            request_data=request.to_storage(),
        )
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                await uow.jobs.add(job)

        if request.secret is not None:
            self._job_secrets[job.id] = request.secret
        logger.info("queue.job.submitted", job_id=str(job.id), model_id=job.model_id)
        self._wake.set()
        return job

    async def remove(self, job_id: UUID) -> bool:
        """Delete a job, cancelling its fan-out if it is the one running.

        Returns:
            True if the job existed
        """
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                deleted = await uow.jobs.delete(job_id)

            if self._active_job_id == job_id and self._active_task is not None:
                self._removed.add(job_id)
                self._active_task.cancel()

        self._job_secrets.pop(job_id, None)
        logger.info("queue.job.removed", job_id=str(job_id), existed=deleted)
        return deleted

    async def clear_successful(self) -> int:
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                return await uow.jobs.delete_by_status(JobStatus.SUCCESSFUL)

    async def clear_failed(self) -> int:
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                return await uow.jobs.delete_by_status(JobStatus.FAILED)

    async def list_jobs(self) -> list[Job]:
        """All jobs, newest first."""
        async with await self.uow_factory() as uow:
            return await uow.jobs.list_all()

    async def get_job(self, job_id: UUID) -> Job | None:
        async with await self.uow_factory() as uow:
            return await uow.jobs.get_by_id(job_id)

    async def cleanup_stale_failures(self, now: datetime | None = None) -> int:
        """Delete failed jobs not updated within the retention window.

        Args:
            now: Reference time (timezone-aware UTC), defaults to the current time

        Returns:
            Number of jobs deleted
        """
        cutoff = (now or utcnow()) - timedelta(seconds=self.settings.failed_job_retention_seconds)
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                deleted = await uow.jobs.delete_failed_before(cutoff)

        if deleted:
            logger.info("queue.cleanup.completed", deleted_jobs=deleted)
        return deleted

    async def process_pending(self) -> int:
        """Run in-progress jobs oldest first until none remain.

        Only one caller processes at a time.

        Returns:
            Number of jobs processed by this call
        """
        processed = 0
        seen: set[UUID] = set()

        async with self._lock:
            while True:
                async with await self.uow_factory() as uow:
                    job = await uow.jobs.get_next_in_progress()
                if job is None:
                    break
                if job.id in seen:
                    # The job could not be moved out of in_progress; stop rather than spin
                    logger.error("queue.job.stuck", job_id=str(job.id))
                    break
                seen.add(job.id)

                await self._process(job)
                processed += 1

        return processed

    async def _process(self, job: Job) -> None:
        log = logger.bind(job_id=str(job.id), model_id=job.model_id)

        # A remove() between selection and here must not leave a fan-out running
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                current = await uow.jobs.get_by_id(job.id)
            if current is None or current.status != JobStatus.IN_PROGRESS:
                log.info("queue.job.skipped")
                return
            self._active_job_id = job.id
            self._active_task = asyncio.create_task(self._execute(job))

        log.info("queue.job.started")
        try:
            outcome = await self._active_task
        except asyncio.CancelledError:
            if job.id in self._removed:
                log.info("queue.job.cancelled")
                return
            raise
        except Exception as e:
            log.error(
                "queue.job.error",
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            outcome = JobOutcome.failed(ErrorCode.GENERATOR_ERROR, f"Failed with error: {e}")
        finally:
            self._active_job_id = None
            self._active_task = None
            self._removed.discard(job.id)

        if not await self._finish(job.id, outcome):
            # Removed after its fan-out completed; drop what it persisted
            if outcome.ok and outcome.generation_set is not None:
                await self.orchestrator.delete_set(outcome.generation_set.id)
            log.info("queue.job.discarded")
            return
        if outcome.ok:
            log.info("queue.job.succeeded", set_id=str(outcome.generation_set.id))
        else:
            log.warning(
                "queue.job.failed",
                error_code=outcome.error_code.value if outcome.error_code else None,
                error_message=outcome.error_message,
            )

    async def _execute(self, job: Job) -> JobOutcome:
        try:
            request = GenerationRequest.model_validate(job.request_data)
        except (ValidationError, TypeError):
            return JobOutcome.failed(ErrorCode.GENERATOR_ERROR, INVALID_REQUEST_DATA)

        request = request.with_secret(self._secret_for(job, request))
        try:
            return await self.orchestrator.run_job(request, job.set_type)
        except UnknownModel as e:
            return JobOutcome.failed(e.code, str(e))

    def _secret_for(self, job: Job, request: GenerationRequest) -> str | None:
        secret = self._job_secrets.get(job.id)
        if secret is not None:
            return secret.get_secret_value()
        descriptor = self.resolver.registry.lookup(request.model_id)
        if self.secrets is None or descriptor is None:
            return None
        return self.secrets.secret_for(descriptor)

    async def _finish(self, job_id: UUID, outcome: JobOutcome) -> bool:
        """Record the outcome on the job row; False if the job is gone or already final."""
        self._job_secrets.pop(job_id, None)
        async with self._write_lock:
            async with await self.uow_factory() as uow:
                job = await uow.jobs.get_by_id(job_id)
                if job is None or job.status != JobStatus.IN_PROGRESS:
                    return False
                if outcome.ok and outcome.generation_set is not None:
                    job.mark_successful(outcome.generation_set.id)
                else:
                    job.mark_failed(
                        outcome.error_message or "Generation failed",
                        outcome.error_code.value if outcome.error_code else None,
                    )
                await uow.jobs.save(job)
        return True

    async def _run_worker(self) -> None:
        logger.info("queue.worker.started")
        try:
            while True:
                self._wake.clear()
                try:
                    await self.process_pending()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "queue.worker.error",
                        error_type=type(e).__name__,
                        error_message=str(e),
                        exc_info=True,
                    )
                    await asyncio.sleep(1)
                    continue
                await self._wake.wait()
        except asyncio.CancelledError:
            logger.info("queue.worker.stopped")
            raise

    async def _run_cleanup(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.settings.cleanup_interval_seconds)
                try:
                    await self.cleanup_stale_failures()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "queue.cleanup.error",
                        error_type=type(e).__name__,
                        error_message=str(e),
                        exc_info=True,
                    )
        except asyncio.CancelledError:
            logger.debug("queue.cleanup.stopped")
            raise
