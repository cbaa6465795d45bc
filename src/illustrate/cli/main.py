"""Command line host for the generation engine.

Usage:
    python -m illustrate.cli COMMAND [OPTIONS]

Examples:
    # List active image models
    python -m illustrate.cli models --set-type generate

    # Price preview for two HD images
    python -m illustrate.cli estimate flux-schnell --count 2

    # Queue a job and process it to completion
    python -m illustrate.cli generate flux-schnell "a red fox" --count 2

    # Show queued jobs, newest first
    python -m illustrate.cli queue

    # Sweep failed jobs past the retention window
    python -m illustrate.cli cleanup
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
from pydantic import ValidationError

from illustrate.core import timezone  # noqa: F401
from illustrate.core.config import Settings, configure_logging
from illustrate.core.dependencies import EngineContext, build_engine_context
from illustrate.models.generation import ArtQuality, ArtStyle, ArtVariant, ContentType, SetType
from illustrate.models.job import JobStatus
from illustrate.services.exceptions import UnknownModel
from illustrate.services.generation.contracts import GenerationRequest
from illustrate.services.registry.costs import cost_unit, estimate_cost, format_cost
from illustrate.services.registry.models import ModelRegistry

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Image and video generation engine")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    models = commands.add_parser("models", help="List registered models")
    models.add_argument(
        "--set-type",
        choices=[s.value for s in SetType],
        help="Only models of this set type",
    )
    models.add_argument("--all", action="store_true", help="Include inactive models")

    estimate = commands.add_parser("estimate", help="Estimate the cost of a request")
    estimate.add_argument("model_id")
    _add_request_options(estimate)

    generate = commands.add_parser("generate", help="Queue a job and process it")
    generate.add_argument("model_id")
    generate.add_argument("prompt")
    _add_request_options(generate)
    generate.add_argument("--negative-prompt", help="Negative prompt where supported")
    generate.add_argument(
        "--style", choices=[s.value for s in ArtStyle], default=ArtStyle.NATURAL.value
    )
    generate.add_argument(
        "--variant", choices=[v.value for v in ArtVariant], default=ArtVariant.NORMAL.value
    )

    commands.add_parser("queue", help="List jobs, newest first")
    commands.add_parser("cleanup", help="Delete failed jobs past the retention window")

    return parser.parse_args(argv)


def _add_request_options(parser: ArgumentParser) -> None:
    parser.add_argument("--count", type=int, default=1, help="Number of outputs (default: 1)")
    parser.add_argument("--dimensions", default="1024x1024", help="WIDTHxHEIGHT")
    parser.add_argument(
        "--quality", choices=[q.value for q in ArtQuality], default=ArtQuality.HD.value
    )
    parser.add_argument("--duration", type=int, help="Video duration in seconds")


def list_models(args: Namespace) -> int:
    registry = ModelRegistry()
    set_type = SetType(args.set_type) if args.set_type else None
    for model in registry.models(set_type=set_type, active_only=not args.all):
        dimensions = ", ".join(model.dimensions) or "source image"
        print(f"{model.model_id:<24} {model.provider.value:<13} {model.name} [{dimensions}]")
    return 0


def estimate(args: Namespace) -> int:
    model = ModelRegistry().get(args.model_id)
    cost = estimate_cost(
        model.code,
        ArtQuality(args.quality),
        args.dimensions,
        args.count,
        args.duration,
    )
    print(f"{model.model_id}: {format_cost(cost, cost_unit(model.code))}")
    return 0


async def generate(args: Namespace, context: EngineContext) -> int:
    request = GenerationRequest(
        model_id=args.model_id,
        prompt=args.prompt,
        negative_prompt=args.negative_prompt,
        art_style=ArtStyle(args.style),
        art_variant=ArtVariant(args.variant),
        art_quality=ArtQuality(args.quality),
        art_dimensions=args.dimensions,
        count=args.count,
        duration_seconds=args.duration,
    )
    job = await context.queue.submit(request)
    print(f"Queued job {job.id}")

    await context.queue.process_pending()

    finished = await context.queue.get_job(job.id)
    if finished is None:
        print("Job was removed before it finished", file=sys.stderr)
        return 1
    if finished.status != JobStatus.SUCCESSFUL:
        print(f"Job failed [{finished.error_code}]: {finished.error_message}", file=sys.stderr)
        return 1

    print(f"Job succeeded, set {finished.set_id}")
    async with await context.queue.uow_factory() as uow:
        generations = await uow.generations.get_by_set(finished.set_id)
    for generation in generations:
        path = context.store.path_for(
            str(generation.id), "mp4" if generation.content_type == ContentType.VIDEO else "png"
        )
        palette = " ".join(generation.color_palette)
        print(f"  {path} ({generation.size} bytes) {palette}")
    return 0


async def show_queue(context: EngineContext) -> int:
    jobs = await context.queue.list_jobs()
    if not jobs:
        print("Queue is empty")
    for job in jobs:
        detail = job.error_message or (str(job.set_id) if job.set_id else "")
        print(f"{job.id} {job.status.value:<12} {job.model_id:<20} {detail}")
    return 0


async def cleanup(context: EngineContext) -> int:
    deleted = await context.queue.cleanup_stale_failures()
    print(f"Deleted {deleted} stale failed job(s)")
    return 0


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    try:
        if args.command == "models":
            return list_models(args)
        if args.command == "estimate":
            return estimate(args)

        context = await build_engine_context(settings)
        try:
            if args.command == "generate":
                return await generate(args, context)
            if args.command == "queue":
                return await show_queue(context)
            return await cleanup(context)
        finally:
            await context.aclose()

    except UnknownModel as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except ValidationError as e:
        print(f"\nInvalid request: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
