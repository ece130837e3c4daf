"""Debounced batching of source changes for watch mode."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Set, Tuple

from .errors import ConfigError
from .git.diff import ChangeDetector
from .logging import get_logger
from .models import ChangeSet


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    """Schedules a callback after a delay; the aggregator's only clock."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopTimers:
    """:class:`Timers` backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass(frozen=True)
class Batch:
    """A snapshot of pending changes handed to the processor."""

    paths: Tuple[str, ...]
    changes: ChangeSet
    enhance: bool


Processor = Callable[[Batch], Awaitable[object]]


class ChangeAggregator:
    """Accumulates changed paths and flushes them as batches.

    A flush happens when the debounce timer expires after the last
    :meth:`notify` or when the periodic timer finds pending work. At most one
    batch is processed at a time; a flush requested meanwhile is deferred and
    runs once the in-flight batch completes. Batches touching at least
    ``ai_threshold`` distinct paths are flagged for enhancement.
    """

    def __init__(
        self,
        processor: Processor,
        *,
        detector: ChangeDetector | None = None,
        debounce_seconds: float = 5.0,
        flush_interval: float = 30.0,
        ai_threshold: int = 3,
        timers: Timers | None = None,
    ) -> None:
        if ai_threshold < 1:
            raise ConfigError("ai_threshold must be at least 1")
        self._processor = processor
        self.detector = detector or ChangeDetector()
        self.debounce_seconds = debounce_seconds
        self.flush_interval = flush_interval
        self.ai_threshold = ai_threshold
        self._timers = timers or LoopTimers()
        self.logger = get_logger("scheduler")

        self._pending_paths: List[str] = []
        self._pending_changes = ChangeSet()
        self._processing = False
        self._flush_deferred = False
        self._closed = False
        self._debounce: Optional[TimerHandle] = None
        self._periodic: Optional[TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self.failed_batches: List[Batch] = []

    @property
    def pending_paths(self) -> Tuple[str, ...]:
        return tuple(self._pending_paths)

    @property
    def pending_changes(self) -> ChangeSet:
        return self._pending_changes

    @property
    def is_processing(self) -> bool:
        return self._processing

    def start(self) -> None:
        """Arm the periodic flush timer."""
        self._closed = False
        if self._periodic is None:
            self._arm_periodic()

    def notify(self, path: str) -> None:
        """Record a created or modified path and restart the debounce window."""
        if self._closed:
            return
        self.logger.debug("File changed: %s", path)
        self._record(path)
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = self._timers.call_later(self.debounce_seconds, self._on_debounce)

    def notify_deleted(self, path: str) -> None:
        """Record a deleted path; deletions do not restart the debounce window."""
        if self._closed:
            return
        self.logger.debug("File deleted: %s", path)
        self._record(path)

    async def flush(self) -> Optional[Batch]:
        """Process pending changes now; returns the batch handed to the processor."""
        if self._processing:
            self._flush_deferred = True
            self.logger.debug("Batch in flight; deferring flush")
            return None
        if not self._pending_paths:
            return None

        batch = self._take_batch()
        self._processing = True
        self.logger.info(
            "Processing %d accumulated changes (%s, enhance=%s)",
            len(batch.paths),
            batch.changes.describe(),
            "yes" if batch.enhance else "no",
        )
        try:
            await self._processor(batch)
        except Exception as exc:
            self.failed_batches.append(batch)
            self.logger.error(
                "Batch failed (%s); replay manually with paths: %s; error: %s",
                batch.changes.describe(),
                ", ".join(batch.paths),
                exc,
            )
        else:
            self.logger.info("Documentation updated for %d changes", len(batch.paths))
        finally:
            self._processing = False

        if self._flush_deferred:
            self._flush_deferred = False
            if self._pending_paths and not self._closed:
                self._schedule_flush()
        return batch

    async def drain(self) -> None:
        """Wait until every scheduled flush, including follow-ups, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        """Cancel timers; pending changes are kept but no longer flushed automatically."""
        self._closed = True
        for handle in (self._debounce, self._periodic):
            if handle is not None:
                handle.cancel()
        self._debounce = None
        self._periodic = None

    # ------------------------------------------------------------------
    # Internals

    def _record(self, path: str) -> None:
        if path not in self._pending_paths:
            self._pending_paths.append(path)
        self._pending_changes = self._pending_changes.merge(self.detector.classify([path]))

    def _take_batch(self) -> Batch:
        paths = tuple(self._pending_paths)
        batch = Batch(
            paths=paths,
            changes=self._pending_changes,
            enhance=len(paths) >= self.ai_threshold,
        )
        self._pending_paths = []
        self._pending_changes = ChangeSet()
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None
        return batch

    def _arm_periodic(self) -> None:
        self._periodic = self._timers.call_later(self.flush_interval, self._on_periodic)

    def _on_periodic(self) -> None:
        self._periodic = None
        if self._closed:
            return
        self._arm_periodic()
        if self._pending_paths:
            self._schedule_flush()

    def _on_debounce(self) -> None:
        self._debounce = None
        if not self._closed:
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        task = asyncio.get_running_loop().create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


__all__ = ["Batch", "ChangeAggregator", "LoopTimers", "TimerHandle", "Timers"]
