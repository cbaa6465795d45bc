"""Background processing for queued generation jobs."""

from illustrate.workers.queue_engine import GenerationQueue

__all__ = ["GenerationQueue"]
