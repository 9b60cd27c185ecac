"""Watch, debounce, queue and generate: the documentation pipeline."""

from .debounce import AsyncioScheduler, Debouncer, ManualScheduler, Scheduler
from .queue import GenerationQueue, WorkerPool
from .service import DocumentationPipeline, PipelineContext, build_context
from .watcher import WorkspaceWatcher

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "DocumentationPipeline",
    "GenerationQueue",
    "ManualScheduler",
    "PipelineContext",
    "Scheduler",
    "WorkerPool",
    "WorkspaceWatcher",
    "build_context",
]
