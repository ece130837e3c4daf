"""File-system watching for the source application (watchdog)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .git.diff import pattern_matches
from .logging import get_logger
from .scheduler import ChangeAggregator


class _SourceEventHandler(FileSystemEventHandler):
    def __init__(self, watcher: "FileWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(event.src_path, deleted=True)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._watcher.dispatch(event.src_path, deleted=True)
        self._watcher.dispatch(event.dest_path)


class FileWatcher:
    """Feeds file-system events under ``source_root`` into a :class:`ChangeAggregator`.

    watchdog delivers events on its own thread; they are handed to the
    aggregator on the event loop with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        source_root: Path,
        aggregator: ChangeAggregator,
        *,
        globs: Sequence[str],
        loop: asyncio.AbstractEventLoop,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.source_root = source_root.resolve()
        self.aggregator = aggregator
        self.globs = list(globs)
        self._loop = loop
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self.logger = get_logger("watcher")

    def relative_path(self, path: str) -> Optional[str]:
        """Return the watched path relative to the source root, or ``None`` to ignore it."""
        try:
            relative = Path(path).resolve().relative_to(self.source_root)
        except ValueError:
            return None
        parts = relative.parts
        if not parts or any(part.startswith(".") for part in parts):
            return None
        rel = relative.as_posix()
        if not any(pattern_matches(rel, pattern) for pattern in self.globs):
            return None
        return rel

    def dispatch(self, path: str, *, deleted: bool = False) -> None:
        rel = self.relative_path(path)
        if rel is None:
            return
        callback = self.aggregator.notify_deleted if deleted else self.aggregator.notify
        self._loop.call_soon_threadsafe(callback, rel)

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = self._observer_factory()
        observer.schedule(_SourceEventHandler(self), str(self.source_root), recursive=True)
        observer.start()
        self._observer = observer
        self.logger.info("Watching %s for changes in: %s", self.source_root, ", ".join(self.globs))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        self.logger.info("Watcher stopped")


__all__ = ["FileWatcher"]
