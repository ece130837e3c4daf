"""Tests for the watchdog bridge into the change aggregator."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import List

from docpilot.scheduler import ChangeAggregator
from docpilot.watcher import FileWatcher, _SourceEventHandler


class _RecordingLoop:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def call_soon_threadsafe(self, callback, *args):  # type: ignore[no-untyped-def]
        self.calls.append((callback.__name__, args))


class _FakeObserver:
    def __init__(self) -> None:
        self.scheduled = []
        self.events: List[str] = []

    def schedule(self, handler, path, recursive=False):  # type: ignore[no-untyped-def]
        self.scheduled.append((handler, path, recursive))

    def start(self) -> None:
        self.events.append("start")

    def stop(self) -> None:
        self.events.append("stop")

    def join(self) -> None:
        self.events.append("join")


async def _noop(batch) -> None:  # type: ignore[no-untyped-def]
    return None


def _watcher(tmp_path: Path, loop: _RecordingLoop, **kwargs) -> FileWatcher:  # type: ignore[no-untyped-def]
    source = tmp_path / "src"
    source.mkdir(exist_ok=True)
    return FileWatcher(
        source,
        ChangeAggregator(_noop),
        globs=["modules/**", "components/**", "generated.d.ts"],
        loop=loop,  # type: ignore[arg-type]
        **kwargs,
    )


def test_relative_path_filters_globs_and_dotfiles(tmp_path: Path) -> None:
    watcher = _watcher(tmp_path, _RecordingLoop())
    source = watcher.source_root

    assert watcher.relative_path(str(source / "modules" / "sales" / "entities" / "order.tsx")) == (
        "modules/sales/entities/order.tsx"
    )
    assert watcher.relative_path(str(source / "generated.d.ts")) == "generated.d.ts"
    assert watcher.relative_path(str(source / "modules" / ".cache" / "x.ts")) is None
    assert watcher.relative_path(str(source / "README.md")) is None
    assert watcher.relative_path(str(tmp_path / "elsewhere.ts")) is None


def test_events_are_bridged_onto_the_loop(tmp_path: Path) -> None:
    loop = _RecordingLoop()
    watcher = _watcher(tmp_path, loop)
    handler = _SourceEventHandler(watcher)
    source = watcher.source_root
    order = str(source / "modules" / "sales" / "entities" / "order.tsx")
    cart = str(source / "modules" / "sales" / "entities" / "cart.tsx")

    handler.on_modified(SimpleNamespace(src_path=order, is_directory=False))
    handler.on_deleted(SimpleNamespace(src_path=cart, is_directory=False))
    handler.on_created(SimpleNamespace(src_path=str(source / "modules"), is_directory=True))
    handler.on_moved(SimpleNamespace(src_path=cart, dest_path=order, is_directory=False))

    assert loop.calls == [
        ("notify", ("modules/sales/entities/order.tsx",)),
        ("notify_deleted", ("modules/sales/entities/cart.tsx",)),
        ("notify_deleted", ("modules/sales/entities/cart.tsx",)),
        ("notify", ("modules/sales/entities/order.tsx",)),
    ]


def test_start_and_stop_manage_observer(tmp_path: Path) -> None:
    observer = _FakeObserver()
    watcher = _watcher(tmp_path, _RecordingLoop(), observer_factory=lambda: observer)

    watcher.start()
    watcher.start()
    watcher.stop()

    assert len(observer.scheduled) == 1
    _, path, recursive = observer.scheduled[0]
    assert path == str(watcher.source_root)
    assert recursive is True
    assert observer.events == ["start", "stop", "join"]
