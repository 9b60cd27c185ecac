"""Documentation pipeline: watcher, dedup queue, worker pool and store in one context."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from catdoc.config import CatdocConfig
from catdoc.docs.generator import GenerationError, SummaryGenerator, TextGenerator
from catdoc.docs.store import DocumentationStore
from catdoc.index.discovery import discover_source_files, md5_bytes
from catdoc.index.manager import ScanManager
from catdoc.index.models import ScanResult
from catdoc.logging.events import EventOutcome, JsonlEventLog
from catdoc.pipeline.debounce import AsyncioScheduler, Debouncer, Scheduler
from catdoc.pipeline.queue import GenerationQueue, WorkerPool
from catdoc.pipeline.watcher import WorkspaceWatcher
from catdoc.workspace.paths import to_workspace_relative

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineContext:
    """Everything the pipeline needs, built once and passed in explicitly."""

    config: CatdocConfig
    scheduler: Scheduler
    store: DocumentationStore
    scanner: ScanManager
    summarizer: SummaryGenerator
    events: JsonlEventLog


def build_context(
    config: CatdocConfig,
    generator: TextGenerator,
    *,
    scheduler: Scheduler | None = None,
    scanner: ScanManager | None = None,
) -> PipelineContext:
    """Wire the store, scanner, summarizer and event log for one workspace."""
    active_scheduler = scheduler or AsyncioScheduler()
    store = DocumentationStore(
        config.docs_path,
        config.doc_files_dir,
        debouncer=Debouncer(config.pipeline.save_debounce_seconds, active_scheduler),
    )
    store.load()
    return PipelineContext(
        config=config,
        scheduler=active_scheduler,
        store=store,
        scanner=scanner or ScanManager(config),
        summarizer=SummaryGenerator(
            generator, max_prompt_chars=config.generator.max_prompt_chars
        ),
        events=JsonlEventLog(config.events_path),
    )


class DocumentationPipeline:
    """Watch -> debounce -> dedup queue -> bounded workers -> documentation store."""

    def __init__(
        self,
        context: PipelineContext,
        *,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._context = context
        self._config = context.config
        self._root = context.config.workspace_root
        self._store = context.store
        self._queue = GenerationQueue()
        self._forced: set[str] = set()
        self._pool = WorkerPool(
            self._queue,
            self._process,
            concurrency=self._config.pipeline.concurrency,
            on_drained=self._on_drained,
        )
        self._watcher = WorkspaceWatcher(
            self._root,
            context.scanner.rules,
            Debouncer(self._config.pipeline.watch_debounce_seconds, context.scheduler),
            on_ready=self._on_file_ready,
            on_removed=self._on_file_removed,
            observer_factory=observer_factory,
        )
        self._stopped = False

    @property
    def queue(self) -> GenerationQueue:
        return self._queue

    @property
    def watcher(self) -> WorkspaceWatcher:
        return self._watcher

    @property
    def store(self) -> DocumentationStore:
        return self._store

    def start(self) -> None:
        """Begin watching the workspace; must be called from the running loop."""
        self._stopped = False
        self._watcher.start()

    def enqueue(self, path: str, *, force: bool = False) -> bool:
        """Queue a path for generation; duplicate pending paths are ignored."""
        if self._stopped:
            return False
        relative = to_workspace_relative(self._root, path)
        if force:
            self._forced.add(relative)
        added = self._queue.enqueue(relative)
        if added:
            logger.debug("Queued %s (%d pending)", relative, len(self._queue))
        self._pool.kick()
        return added

    def enqueue_many(self, paths: Iterable[str], *, force: bool = False) -> int:
        return sum(1 for path in paths if self.enqueue(path, force=force))

    def remove(self, path: str) -> bool:
        """Forget a path: drop it from the queue and delete its documentation."""
        relative = to_workspace_relative(self._root, path)
        self._queue.discard(relative)
        self._forced.discard(relative)
        removed = self._store.remove(relative)
        if removed:
            logger.info("Removed documentation for %s", relative)
            self._record(relative, "removed", 0)
        return removed

    async def drain(self) -> None:
        """Wait until every queued path has been processed."""
        await self._pool.join()

    async def scan_and_enqueue(self, force: bool = False) -> ScanResult:
        """Run a full scan off the loop and queue every file whose content changed."""
        result = await asyncio.to_thread(self._context.scanner.scan, force)
        queued = self.enqueue_many(result.changed_paths, force=force)
        logger.info("Scan queued %d of %d files for generation", queued, result.file_count)
        return result

    async def regenerate_all(self) -> int:
        """Clear the queue and force generation for every eligible workspace file."""
        self._queue.clear()
        self._forced.clear()
        candidates = await asyncio.to_thread(
            discover_source_files,
            self._root,
            self._context.scanner.rules,
            follow_symlinks=self._config.index.follow_symlinks,
        )
        return self.enqueue_many((item.relative_path for item in candidates), force=True)

    async def generate_for(self, paths: Iterable[str], *, force: bool = False) -> None:
        """Queue the given paths and wait for the queue to drain."""
        self.enqueue_many(paths, force=force)
        await self.drain()

    async def stop(self) -> None:
        """Stop watching, abandon queued work, bound in-flight work, then flush the store."""
        if self._stopped:
            return
        self._stopped = True
        self._watcher.stop()
        grace = self._config.pipeline.shutdown_grace_seconds
        dropped, cancelled = await self._pool.shutdown(grace)
        if dropped:
            logger.info("Dropped %d queued paths at shutdown", dropped)
        if cancelled:
            logger.warning("%d generations did not finish before shutdown", cancelled)
        self._forced.clear()
        self._store.flush()

    def _on_file_ready(self, relative: str) -> None:
        self.enqueue(relative)

    def _on_file_removed(self, relative: str) -> None:
        self.remove(relative)

    def _on_drained(self) -> None:
        logger.debug("Generation queue drained")
        if self._store.dirty:
            self._store.save()

    async def _process(self, relative: str) -> None:
        started = time.perf_counter()
        forced = relative in self._forced
        self._forced.discard(relative)
        path = self._root / relative
        try:
            snapshot = await asyncio.to_thread(_read_with_mtime, path)
        except OSError as exc:
            logger.warning("Could not read %s: %s", relative, exc)
            self.remove(relative)
            self._record(relative, "failed", _elapsed_ms(started), str(exc))
            return
        if snapshot is None:
            logger.info("Skipping %s: file no longer exists", relative)
            self.remove(relative)
            return
        data, mtime = snapshot

        content_hash = md5_bytes(data)
        existing = self._store.get(relative)
        if not forced and existing is not None and existing.content_hash == content_hash:
            logger.debug("Skipping %s: documentation is current", relative)
            self._record(relative, "skipped", _elapsed_ms(started))
            return

        try:
            doc = await asyncio.wait_for(
                self._context.summarizer.summarize(
                    relative,
                    data.decode("utf-8", errors="replace"),
                    content_hash=content_hash,
                    last_modified=_iso_from_timestamp(mtime),
                ),
                timeout=self._config.pipeline.generation_timeout_seconds,
            )
        except TimeoutError:
            message = (
                f"timed out after {self._config.pipeline.generation_timeout_seconds:g} seconds"
            )
            logger.error("Generation for %s %s", relative, message)
            self._record(relative, "failed", _elapsed_ms(started), message)
            return
        except GenerationError as exc:
            logger.error("Generation failed for %s: %s", relative, exc)
            self._record(relative, "failed", _elapsed_ms(started), str(exc))
            return

        if not await asyncio.to_thread(path.exists):
            logger.info("Discarding summary for %s: file was deleted during generation", relative)
            self.remove(relative)
            return
        self._store.upsert(doc)
        logger.info("Documented %s", relative)
        self._record(relative, "documented", _elapsed_ms(started))

    def _record(
        self, relative: str, outcome: EventOutcome, duration_ms: int, error: str | None = None
    ) -> None:
        try:
            self._context.events.record(relative, outcome, duration_ms=duration_ms, error=error)
        except OSError as exc:
            logger.warning("Could not append generation event for %s: %s", relative, exc)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _iso_from_timestamp(value: float) -> str:
    moment = datetime.fromtimestamp(value, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _read_with_mtime(path: Path) -> tuple[bytes, float] | None:
    """Return the file's bytes and mtime, or None when it is not a regular file."""
    if not path.is_file():
        return None
    return path.read_bytes(), path.stat().st_mtime
