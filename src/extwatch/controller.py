"""Wires the event source, scheduler and orchestrator into one watch session. Primary embed point."""

import asyncio
import logging
from typing import Callable

from extwatch.build_runner import BuildRunner
from extwatch.cdp import CdpSurfaceOpener
from extwatch.orchestrator import BuildReloadOrchestrator, Builder, Reloader
from extwatch.remote_reload import RemoteReloadClient
from extwatch_core.config import ExtWatchConfig, resolve_target
from extwatch_core.file_watcher import WatchdogEventSource
from extwatch_core.models import ChangeEvent, CycleResult, ExtensionTarget, StartupSummary
from extwatch_core.notifier import NoOpNotifier, Notifier
from extwatch_core.reasons import reason_for
from extwatch_core.scheduler import CoalescingScheduler
from extwatch_core.watchers import EventSource

logger = logging.getLogger(__name__)

STARTUP_REASON = "startup"

EventSourceFactory = Callable[[Callable[[ChangeEvent], None], asyncio.AbstractEventLoop], EventSource]


class DevLoopController:
    """Owns one watch session: watchers, debounce timer and orchestrator.

    The extension target is resolved in ``__init__``, so a missing manifest
    fails before anything is watched.
    """

    def __init__(
        self,
        config: ExtWatchConfig,
        notifier: Notifier | None = None,
        build_runner: Builder | None = None,
        reloader: Reloader | None = None,
        target: ExtensionTarget | None = None,
        event_source_factory: EventSourceFactory | None = None,
        on_cycle_finished: Callable[[CycleResult], None] | None = None,
    ):
        """Initialize controller.

        Args:
            config: Resolved session settings
            notifier: Console notifications (defaults to NoOpNotifier - silent)
            build_runner: Overrides the configured build command
            reloader: Overrides the CDP reload client
            target: Overrides the manifest-derived extension target
            event_source_factory: Builds the event source (defaults to watchdog)
            on_cycle_finished: Optional listener called after every cycle

        Raises:
            ManifestError: If ``target`` is omitted and the manifest cannot be read
        """
        self.config = config
        self.notifier = notifier or NoOpNotifier()
        self.target = target or resolve_target(config)
        self.build_runner = build_runner or BuildRunner.from_argv(config.build_command, cwd=config.project_root)
        self.reloader = reloader or RemoteReloadClient(CdpSurfaceOpener(config.browser_url))
        self.event_source_factory = event_source_factory or WatchdogEventSource

        self.orchestrator = BuildReloadOrchestrator(
            self.build_runner,
            self.reloader,
            self.target,
            notifier=self.notifier,
            on_cycle_finished=on_cycle_finished,
        )
        self.scheduler: CoalescingScheduler | None = None
        self._event_source: EventSource | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_attached(self) -> bool:
        return self._loop is not None

    def summary(self) -> StartupSummary:
        """Settings printed at startup."""
        root = self.config.project_root.resolve()
        shown = []
        for path in self.config.watch_roots:
            try:
                shown.append(path.relative_to(root).as_posix())
            except ValueError:
                shown.append(str(path))
        return StartupSummary(
            browser_url=self.config.browser_url,
            lookup_label=self.target.lookup_label,
            watch_roots=shown,
            debounce_ms=self.config.debounce_ms,
        )

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start watching and, if configured, queue the startup build.

        Idempotent. Must be called with a running loop.

        Raises:
            RuntimeError: If the loop is not running
            WatchStartupError: If none of the roots could be watched
        """
        if self._loop is not None:
            return

        if not loop.is_running():
            raise RuntimeError("Event loop must be running before attach().")

        self.scheduler = CoalescingScheduler(self.orchestrator.trigger, self.config.debounce_ms, loop=loop)
        event_source = self.event_source_factory(self._on_change, loop)
        for root_config in self.config.watch_root_configs():
            event_source.add_watch(root_config)
        event_source.start()

        self._event_source = event_source
        self._loop = loop

        for line in self.summary().lines():
            self.notifier.info(line)

        if self.config.initial_build:
            self.scheduler.record_event(STARTUP_REASON)

    def detach(self) -> None:
        """Close all watches and the debounce timer. A running cycle is left to finish."""
        if self._event_source is not None:
            try:
                self._event_source.stop()
            except Exception as e:
                logger.error(f"Error stopping file watcher: {e}")
            self._event_source = None
        if self.scheduler is not None:
            self.scheduler.cancel()
        self.orchestrator.close()
        self._loop = None

    def _on_change(self, event: ChangeEvent) -> None:
        if self.scheduler is None:
            logger.warning(f"Change ignored - controller not attached: {event}")
            return
        reason = reason_for(event, self.config.project_root.resolve())
        logger.debug(f"Change: {reason}")
        self.scheduler.record_event(reason)

    def request_build(self, reason: str | None = None) -> None:
        """Trigger a cycle right away, bypassing the quiet period."""
        if self.scheduler is None:
            raise RuntimeError("Controller not attached to event loop. Call attach() first.")
        self.scheduler.trigger_now(reason)

    async def run(self, stop: asyncio.Event) -> None:
        """Watch until ``stop`` is set, then close all watches."""
        self.attach(asyncio.get_running_loop())
        try:
            await stop.wait()
        finally:
            self.detach()
