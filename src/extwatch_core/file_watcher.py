"""File watcher implementation using watchdog."""

import asyncio
import logging
import os
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from extwatch_core.errors import WatchStartupError
from extwatch_core.models import ChangeEvent, ChangeKind
from extwatch_core.watchers import ChangeCallback, WatchRootConfig

logger = logging.getLogger(__name__)


class _ChangeHandler(FileSystemEventHandler):
    """Turns watchdog events under one root into ``ChangeEvent``s on the loop."""

    def __init__(
        self,
        root: Path,
        callback: ChangeCallback,
        loop: asyncio.AbstractEventLoop,
        ignore_dirs: list[str] | None = None,
        only_file: Path | None = None,
    ):
        """Initialize handler.

        Args:
            root: Watched root, reported on every event
            callback: Receives each ChangeEvent, always called on ``loop``
            loop: Event loop owning the callback
            ignore_dirs: Directory names to skip
            only_file: When the root is a single file, the only path to report
        """
        self.root = root
        self.callback = callback
        self.loop = loop
        self.ignore_dirs = set(ignore_dirs or [])
        self.only_file = only_file

    def _is_ignored(self, path: Path) -> bool:
        if self.only_file is not None:
            return path != self.only_file
        try:
            parts = path.relative_to(self.root).parts
        except ValueError:
            return False
        return any(part in self.ignore_dirs for part in parts[:-1])

    def _relative(self, path: Path) -> str:
        if self.only_file is not None:
            return path.name
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def _emit(self, kind: ChangeKind, raw_path) -> None:
        path = Path(os.fsdecode(raw_path))
        if self._is_ignored(path):
            return
        root = self.only_file.parent if self.only_file is not None else self.root
        event = ChangeEvent(root=root, kind=kind, relative_path=self._relative(path))
        try:
            self.loop.call_soon_threadsafe(self.callback, event)
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug(f"Dropped change after loop closed: {event}")

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation events."""
        if not event.is_directory:
            self._emit(ChangeKind.CREATE, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events."""
        if not event.is_directory:
            self._emit(ChangeKind.MODIFY, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle deletions, including the root itself disappearing."""
        path = Path(os.fsdecode(event.src_path))
        if self.only_file is None and path == self.root:
            logger.warning(f"Watch root is no longer accessible: {self.root}")
            return
        if not event.is_directory:
            self._emit(ChangeKind.DELETE, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle renames, reported for the destination path."""
        if not event.is_directory:
            self._emit(ChangeKind.RENAME, getattr(event, "dest_path", "") or event.src_path)


class WatchdogEventSource:
    """Watches one or more roots and delivers ``ChangeEvent``s on the event loop.

    Each root gets its own observer so that a root failing to start (or
    disappearing later) does not stop the others.
    """

    def __init__(self, callback: ChangeCallback, loop: asyncio.AbstractEventLoop):
        """Initialize event source.

        Args:
            callback: Called on ``loop`` with each ChangeEvent
            loop: Event loop for delivery
        """
        self.callback = callback
        self.loop = loop
        self.observers: dict[Path, Observer] = {}
        self.handlers: list[_ChangeHandler] = []

    @property
    def roots(self) -> list[Path]:
        """Roots that are currently being watched."""
        return list(self.observers)

    def add_watch(self, config: WatchRootConfig) -> bool:
        """Add a watched root.

        Args:
            config: Root configuration

        Returns:
            True if the root was scheduled, False if it was skipped
        """
        root = Path(config.dir).resolve()
        if not root.exists():
            logger.warning(f"Watch target does not exist: {root}")
            return False
        if not os.access(root, os.R_OK):
            logger.warning(f"[watch-error] {root}: permission denied")
            return False
        if root in self.observers:
            logger.debug(f"Already watching {root}")
            return True

        only_file = root if root.is_file() else None
        handler = _ChangeHandler(
            root=root,
            callback=self.callback,
            loop=self.loop,
            ignore_dirs=config.ignore_dirs,
            only_file=only_file,
        )

        observer = Observer()
        watch_path = root.parent if only_file else root
        try:
            observer.schedule(handler, str(watch_path), recursive=only_file is None)
        except OSError as e:
            logger.warning(f"[watch-error] {root}: {e}")
            return False

        self.observers[root] = observer
        self.handlers.append(handler)
        return True

    def start(self) -> None:
        """Start all scheduled observers.

        Roots that fail to start are logged and dropped.

        Raises:
            WatchStartupError: If no root could be watched
        """
        for root, observer in list(self.observers.items()):
            try:
                observer.start()
            except OSError as e:
                logger.warning(f"[watch-error] {root}: {e}")
                del self.observers[root]
                continue
            logger.info(f"Watching {root}")

        if not self.observers:
            raise WatchStartupError("None of the configured watch targets could be watched")

        logger.debug(f"Started {len(self.observers)} file watcher(s)")

    def stop(self) -> None:
        """Stop all file watchers."""
        for observer in self.observers.values():
            if observer.is_alive():
                observer.stop()
        for observer in self.observers.values():
            if observer.is_alive():
                observer.join(timeout=2.0)
        if self.observers:
            logger.info("Stopped file watchers")
        self.observers.clear()
        self.handlers.clear()
