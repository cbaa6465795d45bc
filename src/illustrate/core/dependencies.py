"""Engine wiring: settings, registry, transport, storage and queue in one place."""

from dataclasses import dataclass
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from illustrate.core.config import Settings
from illustrate.core.database import create_engine, init_db, setup_db_session
from illustrate.core.secrets import SecretProvider, SettingsSecretProvider
from illustrate.services.artifacts.pipeline import ArtifactPipeline
from illustrate.services.artifacts.storage import MediaStore
from illustrate.services.generation.orchestrator import GenerationOrchestrator
from illustrate.services.providers.resolver import AdapterResolver
from illustrate.services.registry.models import ModelRegistry
from illustrate.services.transport import HttpTransport
from illustrate.uow import create_uow_factory
from illustrate.workers.queue_engine import GenerationQueue

logger = structlog.get_logger(__name__)


@dataclass
class EngineContext:
    settings: Settings
    engine: AsyncEngine
    registry: ModelRegistry
    transport: HttpTransport
    store: MediaStore
    resolver: AdapterResolver
    orchestrator: GenerationOrchestrator
    queue: GenerationQueue

    async def aclose(self) -> None:
        await self.queue.stop()
        await self.transport.aclose()
        await self.engine.dispose()


async def build_engine_context(
    settings: Settings,
    secrets: SecretProvider | None = None,
    transport: HttpTransport | None = None,
    create_schema: bool = True,
) -> EngineContext:
    """Build every collaborator from settings.

    Args:
        settings: Loaded settings
        secrets: Credential lookup (default: provider keys from settings)
        transport: Pre-built transport, e.g. backed by httpx.MockTransport
        create_schema: Run ``create_all`` before returning
    """
    engine = create_engine(settings.database_url, settings.db_pool_size)
    if create_schema:
        await init_db(engine)
    uow_factory = create_uow_factory(setup_db_session(engine=engine))

    registry = ModelRegistry()
    transport = transport or HttpTransport(timeout=settings.http_timeout_seconds)
    store = MediaStore(Path(settings.media_dir))
    resolver = AdapterResolver(registry, transport, settings.poll_interval_scale)
    orchestrator = GenerationOrchestrator(
        resolver,
        ArtifactPipeline(store),
        uow_factory,
        max_parallel_requests=settings.max_parallel_requests,
    )
    queue = GenerationQueue(
        uow_factory,
        orchestrator,
        resolver,
        settings,
        secrets=secrets or SettingsSecretProvider(settings),
    )

    logger.debug("engine.context.ready", database_url=settings.database_url.split("@")[-1])
    return EngineContext(
        settings=settings,
        engine=engine,
        registry=registry,
        transport=transport,
        store=store,
        resolver=resolver,
        orchestrator=orchestrator,
        queue=queue,
    )
