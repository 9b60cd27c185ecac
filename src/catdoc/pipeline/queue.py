"""Deduplicated FIFO generation queue drained by a fixed-size worker pool."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator

logger = logging.getLogger(__name__)

ProcessFn = Callable[[str], Awaitable[None]]


class GenerationQueue:
    """Ordered set of pending normalized paths with O(1) membership."""

    def __init__(self) -> None:
        self._items: dict[str, None] = {}

    def enqueue(self, path: str) -> bool:
        """Add ``path`` at the tail; returns False when it is already pending."""
        if path in self._items:
            return False
        self._items[path] = None
        return True

    def pop(self) -> str | None:
        """Remove and return the oldest pending path."""
        for path in self._items:
            del self._items[path]
            return path
        return None

    def discard(self, path: str) -> bool:
        if path not in self._items:
            return False
        del self._items[path]
        return True

    def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        return count

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._items)

    def __contains__(self, path: object) -> bool:
        return path in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._items))


class WorkerPool:
    """Up to ``concurrency`` worker tasks pulling paths from a :class:`GenerationQueue`.

    Workers start on demand and exit once the queue is empty; ``on_drained``
    runs when the last worker exits. A failing item is logged and never stops
    its worker.
    """

    def __init__(
        self,
        queue: GenerationQueue,
        process: ProcessFn,
        *,
        concurrency: int,
        on_drained: Callable[[], None] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._queue = queue
        self._process = process
        self._concurrency = concurrency
        self._on_drained = on_drained
        self._workers: set[asyncio.Task[None]] = set()
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @property
    def active(self) -> bool:
        return bool(self._workers)

    def kick(self) -> int:
        """Start workers for pending items, up to the pool size; returns how many started."""
        self._workers = {task for task in self._workers if not task.done()}
        missing = min(self._concurrency - len(self._workers), len(self._queue))
        for _ in range(max(0, missing)):
            task = asyncio.create_task(self._worker())
            self._workers.add(task)
            task.add_done_callback(self._worker_done)
        return max(0, missing)

    async def join(self) -> None:
        """Wait until the queue is empty and every worker has exited."""
        while self._workers:
            await asyncio.gather(*list(self._workers), return_exceptions=True)

    async def shutdown(self, grace_seconds: float) -> tuple[int, int]:
        """Drop pending items, give in-flight work ``grace_seconds``, then cancel it.

        Returns ``(dropped, cancelled)`` counts.
        """
        dropped = self._queue.clear()
        live = list(self._workers)
        if not live:
            return dropped, 0
        _, pending = await asyncio.wait(live, timeout=grace_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("Cancelled %d in-flight generations at shutdown", len(pending))
        return dropped, len(pending)

    async def _worker(self) -> None:
        while True:
            path = self._queue.pop()
            if path is None:
                return
            self._in_flight.add(path)
            try:
                await self._process(path)
            except Exception:
                logger.exception("Unexpected error while processing %s", path)
            finally:
                self._in_flight.discard(path)

    def _worker_done(self, task: asyncio.Task[None]) -> None:
        self._workers.discard(task)
        if self._workers:
            return
        if len(self._queue):
            self.kick()
            return
        if self._on_drained is not None:
            self._on_drained()
