"""Generation orchestrator: fan a job out to its adapter and aggregate the results."""

import asyncio
from typing import Callable
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from illustrate.models.generation import (
    ContentType,
    Generation,
    GenerationSet,
    GenerationStatus,
    SetType,
)
from illustrate.services.artifacts.pipeline import ArtifactPipeline
from illustrate.services.exceptions import DecodeError, ErrorCode, StorageError
from illustrate.services.generation.contracts import (
    GenerationRequest,
    GenerationResult,
    JobOutcome,
)
from illustrate.services.providers.base import ProviderAdapter
from illustrate.services.providers.resolver import AdapterResolver

logger = structlog.get_logger(__name__)


class GenerationOrchestrator:
    """Runs one logical job as ``count`` concurrent adapter calls.

    Aggregation is all-or-nothing: a single failed sub-request fails the job
    and nothing is persisted. Media written for the successful siblings is
    purged in that case.
    """

    def __init__(
        self,
        resolver: AdapterResolver,
        pipeline: ArtifactPipeline,
        uow_factory: Callable,
        max_parallel_requests: int = 4,
    ):
        self.resolver = resolver
        self.pipeline = pipeline
        self.uow_factory = uow_factory
        self.max_parallel_requests = max_parallel_requests

    async def run_one(
        self, request: GenerationRequest, adapter: ProviderAdapter
    ) -> GenerationResult:
        """One adapter call followed by the artifact pipeline.

        Never raises except on cancellation.
        """
        result = await adapter.make_request(request)
        if not result.ok:
            return result
        if not result.base64:
            return GenerationResult.failed(
                result.error_code or ErrorCode.GENERATOR_ERROR,
                result.error_message or "Failed with unknown error",
            )

        content_type = ContentType.VIDEO if adapter.model.is_video else ContentType.IMAGE_2D
        try:
            record = await asyncio.to_thread(
                self.pipeline.process, result.base64, request, content_type
            )
        except DecodeError:
            return GenerationResult.failed(ErrorCode.DECODE_ERROR, "Could not decode base64")
        except StorageError as e:
            logger.error("orchestrator.storage.failed", error_message=str(e))
            return GenerationResult.failed(ErrorCode.STORAGE_ERROR, "Could not save image")
        except Exception as e:
            logger.error(
                "orchestrator.pipeline.error",
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            return GenerationResult.failed(ErrorCode.GENERATOR_ERROR, f"Failed with error: {e}")

        return result.model_copy(
            update={
                "generation_id": record.id,
                "size": record.size,
                "color_palette": record.color_palette,
                "base64": None,
            }
        )

    async def run_job(
        self, request: GenerationRequest, set_type: SetType | None = None
    ) -> JobOutcome:
        """Fan out ``request.count`` sub-requests and persist the set on full success.

        Args:
            request: Canonical request, secret already attached
            set_type: Overrides the model's set type on the persisted set

        Returns:
            JobOutcome; failed when any sub-request failed or persistence failed

        Raises:
            UnknownModel: If the model id cannot be resolved
        """
        adapter = self.resolver.resolve(request.model_id)
        limit = max(1, min(request.count, self.max_parallel_requests))
        semaphore = asyncio.Semaphore(limit)
        log = logger.bind(model_id=request.model_id, count=request.count)

        async def bounded() -> GenerationResult:
            async with semaphore:
                return await self.run_one(request, adapter)

        log.info("orchestrator.job.started", parallelism=limit)
        tasks = [asyncio.create_task(bounded()) for _ in range(request.count)]
        try:
            results = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            self._discard(
                [t.result() for t in tasks if not t.cancelled() and t.exception() is None]
            )
            log.info("orchestrator.job.cancelled")
            raise

        if not results:
            return JobOutcome.failed(ErrorCode.GENERATOR_ERROR, "No generation was successful")

        failure = next((r for r in results if not r.ok), None)
        if failure is not None:
            self._discard(results)
            log.warning(
                "orchestrator.job.failed",
                error_code=failure.error_code.value if failure.error_code else None,
                error_message=failure.error_message,
                failed=sum(1 for r in results if not r.ok),
            )
            return JobOutcome.failed(
                failure.error_code or ErrorCode.GENERATOR_ERROR,
                failure.error_message or "Generation failed",
            )

        try:
            outcome = await self._persist(request, adapter, results, set_type)
        except SQLAlchemyError as e:
            self._discard(results)
            log.error("orchestrator.persist.failed", error_message=str(e), exc_info=True)
            return JobOutcome.failed(ErrorCode.STORAGE_ERROR, "Could not save generation set")

        log.info("orchestrator.job.succeeded", set_id=str(outcome.generation_set.id))
        return outcome

    async def _persist(
        self,
        request: GenerationRequest,
        adapter: ProviderAdapter,
        results: list[GenerationResult],
        set_type: SetType | None,
    ) -> JobOutcome:
        model = adapter.model
        content_type = ContentType.VIDEO if model.is_video else ContentType.IMAGE_2D

        generation_set = GenerationSet(
            set_type=set_type or model.set_type,
            model_id=request.model_id,
            prompt=request.prompt,
            negative_prompt=request.negative_prompt,
            search_prompt=request.search_prompt,
            art_style=request.art_style,
            art_variant=request.art_variant,
            art_quality=request.art_quality,
            art_dimensions=request.art_dimensions,
        )
        generations = [
            Generation(
                id=result.generation_id,
                set_id=generation_set.id,
                model_id=request.model_id,
                prompt=request.prompt,
                negative_prompt=request.negative_prompt,
                search_prompt=request.search_prompt,
                model_revised_prompt=result.model_prompt,
                art_style=request.art_style,
                art_variant=request.art_variant,
                art_quality=request.art_quality,
                art_dimensions=request.art_dimensions,
                size=result.size,
                cost=result.cost,
                status=GenerationStatus.GENERATED,
                content_type=content_type,
                color_palette=result.color_palette,
                has_client_image=bool(request.client_image),
                has_client_mask=bool(request.client_mask),
            )
            for result in results
        ]

        async with await self.uow_factory() as uow:
            await uow.sets.add(generation_set)
            await uow.generations.add_all(generations)

        return JobOutcome(
            status=GenerationStatus.GENERATED,
            generation_set=generation_set,
            generations=generations,
        )

    def _discard(self, results: list[GenerationResult]) -> None:
        for result in results:
            if result.generation_id is not None:
                self.pipeline.store.purge(str(result.generation_id))

    async def delete_set(self, set_id: UUID) -> int:
        """Delete a set, its generations and their media files.

        Returns:
            Number of generations removed
        """
        async with await self.uow_factory() as uow:
            generation_ids = await uow.sets.delete(set_id)

        for generation_id in generation_ids:
            self.pipeline.store.purge(str(generation_id))

        logger.info("generation_set.deleted", set_id=str(set_id), generations=len(generation_ids))
        return len(generation_ids)
