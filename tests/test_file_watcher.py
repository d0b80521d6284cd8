"""Tests for the watchdog event source."""

import asyncio

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from extwatch_core.errors import WatchStartupError
from extwatch_core.file_watcher import WatchdogEventSource, _ChangeHandler
from extwatch_core.models import ChangeEvent, ChangeKind
from extwatch_core.watchers import WatchRootConfig


async def drain() -> None:
    """Let call_soon_threadsafe callbacks run."""
    await asyncio.sleep(0.01)


class TestChangeHandler:
    """Mapping watchdog events to ChangeEvents."""

    @pytest.mark.asyncio
    async def test_maps_event_kinds(self, tmp_path):
        events: list[ChangeEvent] = []
        handler = _ChangeHandler(tmp_path, events.append, asyncio.get_running_loop())

        handler.on_created(FileCreatedEvent(str(tmp_path / "a.js")))
        handler.on_modified(FileModifiedEvent(str(tmp_path / "sub" / "b.js")))
        handler.on_deleted(FileDeletedEvent(str(tmp_path / "c.js")))
        handler.on_moved(FileMovedEvent(str(tmp_path / "d.tmp"), str(tmp_path / "d.js")))
        await drain()

        assert events == [
            ChangeEvent(tmp_path, ChangeKind.CREATE, "a.js"),
            ChangeEvent(tmp_path, ChangeKind.MODIFY, "sub/b.js"),
            ChangeEvent(tmp_path, ChangeKind.DELETE, "c.js"),
            ChangeEvent(tmp_path, ChangeKind.RENAME, "d.js"),
        ]

    @pytest.mark.asyncio
    async def test_ignores_directories(self, tmp_path):
        events: list[ChangeEvent] = []
        handler = _ChangeHandler(tmp_path, events.append, asyncio.get_running_loop())

        handler.on_modified(DirModifiedEvent(str(tmp_path / "sub")))
        await drain()

        assert events == []

    @pytest.mark.asyncio
    async def test_ignores_configured_dirs(self, tmp_path):
        events: list[ChangeEvent] = []
        handler = _ChangeHandler(
            tmp_path, events.append, asyncio.get_running_loop(), ignore_dirs=["node_modules"]
        )

        handler.on_modified(FileModifiedEvent(str(tmp_path / "node_modules" / "x" / "index.js")))
        handler.on_modified(FileModifiedEvent(str(tmp_path / "node_modules.js")))
        await drain()

        assert [e.relative_path for e in events] == ["node_modules.js"]

    @pytest.mark.asyncio
    async def test_root_deleted_is_diagnosed_not_emitted(self, tmp_path, caplog):
        events: list[ChangeEvent] = []
        handler = _ChangeHandler(tmp_path, events.append, asyncio.get_running_loop())

        handler.on_deleted(FileDeletedEvent(str(tmp_path)))
        await drain()

        assert events == []
        assert "no longer accessible" in caplog.text

    @pytest.mark.asyncio
    async def test_single_file_root(self, tmp_path):
        events: list[ChangeEvent] = []
        target = tmp_path / "work.js"
        handler = _ChangeHandler(target, events.append, asyncio.get_running_loop(), only_file=target)

        handler.on_modified(FileModifiedEvent(str(target)))
        handler.on_modified(FileModifiedEvent(str(tmp_path / "other.js")))
        await drain()

        assert events == [ChangeEvent(tmp_path, ChangeKind.MODIFY, "work.js")]

    @pytest.mark.asyncio
    async def test_single_file_root_deleted_emits_delete(self, tmp_path, caplog):
        events: list[ChangeEvent] = []
        target = tmp_path / "work.js"
        handler = _ChangeHandler(target, events.append, asyncio.get_running_loop(), only_file=target)

        handler.on_deleted(FileDeletedEvent(str(target)))
        await drain()

        assert events == [ChangeEvent(tmp_path, ChangeKind.DELETE, "work.js")]
        assert "no longer accessible" not in caplog.text


class TestWatchdogEventSource:
    """Root management and real filesystem events."""

    @pytest.mark.asyncio
    async def test_missing_root_skipped(self, tmp_path):
        source = WatchdogEventSource(lambda e: None, asyncio.get_running_loop())
        assert source.add_watch(WatchRootConfig(dir=tmp_path / "missing")) is False
        assert source.roots == []

    @pytest.mark.asyncio
    async def test_start_without_roots_fails(self, tmp_path):
        source = WatchdogEventSource(lambda e: None, asyncio.get_running_loop())
        source.add_watch(WatchRootConfig(dir=tmp_path / "missing"))
        with pytest.raises(WatchStartupError):
            source.start()

    @pytest.mark.asyncio
    async def test_one_bad_root_does_not_stop_others(self, tmp_path):
        good = tmp_path / "src"
        good.mkdir()
        source = WatchdogEventSource(lambda e: None, asyncio.get_running_loop())

        assert source.add_watch(WatchRootConfig(dir=tmp_path / "missing")) is False
        assert source.add_watch(WatchRootConfig(dir=good)) is True
        source.start()
        try:
            assert source.roots == [good.resolve()]
        finally:
            source.stop()
        assert source.roots == []

    @pytest.mark.asyncio
    async def test_delivers_real_change(self, tmp_path):
        root = tmp_path / "src"
        root.mkdir()
        received = asyncio.Event()
        events: list[ChangeEvent] = []

        def on_change(event: ChangeEvent) -> None:
            events.append(event)
            if event.relative_path == "app.js":
                received.set()

        source = WatchdogEventSource(on_change, asyncio.get_running_loop())
        source.add_watch(WatchRootConfig(dir=root))
        source.start()
        try:
            await asyncio.sleep(0.1)
            (root / "app.js").write_text("console.log('hi')")
            await asyncio.wait_for(received.wait(), timeout=5.0)
        finally:
            source.stop()

        assert all(event.root == root.resolve() for event in events)
        assert any(event.kind in (ChangeKind.CREATE, ChangeKind.MODIFY) for event in events)
