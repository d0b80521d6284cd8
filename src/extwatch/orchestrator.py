"""Build/reload orchestration state machine.

States: IDLE → BUILDING on a trigger. A trigger while BUILDING only marks a
rerun (BUILDING_RERUN_QUEUED) and keeps its reasons for that rerun. When a
cycle ends, a queued rerun is issued immediately as a fresh trigger, so any
number of triggers during one cycle collapse into exactly one follow-up.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Callable, Protocol

from extwatch_core.models import CycleResult, ExtensionTarget, OrchestratorState, ReloadOutcome
from extwatch_core.notifier import NoOpNotifier, Notifier
from extwatch_core.reasons import describe_reasons

logger = logging.getLogger(__name__)

QUEUED_CHANGE_REASON = "queued-change"


class Builder(Protocol):
    async def run(self) -> None: ...


class Reloader(Protocol):
    async def reload(self, target: ExtensionTarget) -> ReloadOutcome: ...


class BuildReloadOrchestrator:
    """Runs at most one build-then-reload cycle at a time.

    Errors from the build or the reload end the cycle and are reported
    through the notifier; they never escape the cycle task.
    """

    def __init__(
        self,
        build_runner: Builder,
        reloader: Reloader,
        target: ExtensionTarget,
        notifier: Notifier | None = None,
        on_cycle_finished: Callable[[CycleResult], None] | None = None,
    ):
        """Initialize orchestrator.

        Args:
            build_runner: Runs the build, raises on failure
            reloader: Reloads ``target`` in the browser, raises on failure
            target: Extension to reload
            notifier: Receives console lines (defaults to NoOpNotifier - silent)
            on_cycle_finished: Optional listener called after every cycle
        """
        self.build_runner = build_runner
        self.reloader = reloader
        self.target = target
        self.notifier = notifier or NoOpNotifier()
        self.on_cycle_finished = on_cycle_finished

        self._state = OrchestratorState.IDLE
        self._queued_reasons: set[str] = set()
        self._task: asyncio.Task | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self.cycles_completed = 0
        self.last_result: CycleResult | None = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def rerun_queued(self) -> bool:
        return self._state is OrchestratorState.BUILDING_RERUN_QUEUED

    @property
    def is_busy(self) -> bool:
        return self._state is not OrchestratorState.IDLE

    def trigger(self, reasons: Iterable[str] = ()) -> None:
        """Start a cycle, or queue one rerun if a cycle is running.

        Must be called on the event loop thread.
        """
        reasons = frozenset(reasons)
        if self._closed:
            logger.debug(f"Ignoring trigger after close: {describe_reasons(reasons)}")
            return
        if self.is_busy:
            self._queued_reasons.update(reasons)
            if not self.rerun_queued:
                logger.debug("Cycle in progress, queueing a rerun")
            self._state = OrchestratorState.BUILDING_RERUN_QUEUED
            return

        self._state = OrchestratorState.BUILDING
        self._idle.clear()
        self._task = asyncio.get_running_loop().create_task(self._run_cycle(reasons))

    def _notify(self, level: str, message: str) -> None:
        try:
            getattr(self.notifier, level)(message)
        except Exception as e:
            logger.exception(f"Error in notifier: {e}")

    async def _run_cycle(self, reasons: frozenset[str]) -> None:
        result = CycleResult(reasons=reasons, started_at=datetime.now())
        try:
            self._notify("info", f"Change detected: {describe_reasons(reasons)}")
            await self.build_runner.run()
            outcome = await self.reloader.reload(self.target)
        except Exception as e:
            result.error = e
            logger.debug(f"Cycle failed: {e!r}")
            self._notify("error", f"Build/reload failed: {e}")
        else:
            result.outcome = outcome
            self._notify("info", f"Extension reloaded ({outcome.name}, {outcome.id}).")
        finally:
            result.finished_at = datetime.now()
            self._finish_cycle(result)

    def _finish_cycle(self, result: CycleResult) -> None:
        self.cycles_completed += 1
        self.last_result = result
        if self.on_cycle_finished is not None:
            try:
                self.on_cycle_finished(result)
            except Exception as e:
                logger.exception(f"Error in cycle listener: {e}")

        rerun = self.rerun_queued
        queued, self._queued_reasons = frozenset(self._queued_reasons), set()
        self._state = OrchestratorState.IDLE
        self._task = None

        if rerun and not self._closed:
            self.trigger(queued or {QUEUED_CHANGE_REASON})
        else:
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no cycle is running and no rerun is queued."""
        await self._idle.wait()

    def close(self) -> None:
        """Stop accepting triggers. A running cycle is not interrupted."""
        self._closed = True

    async def aclose(self) -> None:
        """Stop accepting triggers and let an in-flight cycle finish."""
        self.close()
        if self.is_busy:
            logger.info("Waiting for the running build/reload cycle to finish")
            await self.wait_idle()
