"""Filesystem watching: watchdog events normalized, filtered and debounced per path."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from catdoc.pipeline.debounce import Debouncer
from catdoc.workspace.ignore import IgnoreRules
from catdoc.workspace.paths import PathOutsideWorkspaceError, to_workspace_relative

logger = logging.getLogger(__name__)

EventKind = Literal["add", "change", "unlink"]
PathCallback = Callable[[str], None]


class _EventHandler(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread onto the event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        dispatch: Callable[[EventKind, str], None],
    ) -> None:
        self._loop = loop
        self._dispatch = dispatch

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit("add", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit("change", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit("unlink", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory or not isinstance(event, FileSystemMovedEvent):
            return
        self._emit("unlink", event.src_path)
        self._emit("add", event.dest_path)

    def _emit(self, kind: EventKind, path: str | bytes) -> None:
        self._loop.call_soon_threadsafe(self._dispatch, kind, os.fsdecode(path))


class WorkspaceWatcher:
    """Turns raw add/change/unlink events into settled ``on_ready``/``on_removed`` calls.

    Deletions are reported immediately. Additions and changes wait until the
    path has been quiet for the debounce window, then the file is checked on
    disk again: a file that vanished in the meantime is reported as removed.
    """

    def __init__(
        self,
        root: Path,
        rules: IgnoreRules,
        debouncer: Debouncer,
        *,
        on_ready: PathCallback,
        on_removed: PathCallback,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._root = root.resolve()
        self._rules = rules
        self._debouncer = debouncer
        self._on_ready = on_ready
        self._on_removed = on_removed
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if self._observer is not None:
            return
        handler = _EventHandler(loop or asyncio.get_running_loop(), self.dispatch)
        observer = self._observer_factory()
        observer.schedule(handler, str(self._root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes", self._root)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the observer thread and drop pending debounce timers."""
        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            observer.join(timeout)
        self._debouncer.cancel_all()

    def dispatch(self, kind: EventKind, path: str) -> None:
        """Handle one raw event for an absolute or workspace-relative path."""
        try:
            relative = to_workspace_relative(self._root, path)
        except PathOutsideWorkspaceError:
            logger.debug("Ignoring event outside workspace: %s", path)
            return
        if not relative or not self._rules.accepts_file(relative):
            return
        if kind == "unlink":
            self._debouncer.cancel(relative)
            self._on_removed(relative)
            return
        self._debouncer.trigger(relative, lambda: self._settle(relative))

    def _settle(self, relative: str) -> None:
        if (self._root / relative).is_file():
            self._on_ready(relative)
        else:
            logger.debug("Path vanished before debounce settled: %s", relative)
            self._on_removed(relative)
