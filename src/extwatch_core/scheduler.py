"""Debounce bursts of change reasons into single triggers."""

import asyncio
import logging
from typing import Callable

from extwatch_core.reasons import shorten_reason

logger = logging.getLogger(__name__)

TriggerCallback = Callable[[frozenset[str]], None]


class CoalescingScheduler:
    """Collects reasons and fires one trigger once events go quiet.

    Every ``record_event`` restarts the quiet-period timer. When the timer
    expires the pending set is swapped for a fresh one and the old set is
    handed to ``on_trigger`` as a frozenset. All methods must be called on
    the event loop thread.
    """

    def __init__(
        self,
        on_trigger: TriggerCallback,
        debounce_ms: int = 300,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize scheduler.

        Args:
            on_trigger: Receives each reason snapshot
            debounce_ms: Quiet period in milliseconds
            loop: Event loop for the timer (defaults to the running loop)
        """
        if debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {debounce_ms}")
        self.on_trigger = on_trigger
        self.debounce_ms = debounce_ms
        self._loop = loop
        self._pending: set[str] = set()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> frozenset[str]:
        """Reasons recorded since the last trigger."""
        return frozenset(self._pending)

    @property
    def is_armed(self) -> bool:
        """Whether a quiet-period timer is running."""
        return self._timer is not None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def record_event(self, reason: str) -> None:
        """Add a reason and restart the quiet period."""
        self._pending.add(shorten_reason(reason))
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._get_loop().call_later(self.debounce_ms / 1000.0, self._fire)

    def trigger_now(self, reason: str | None = None) -> None:
        """Fire immediately with everything pending (plus ``reason``)."""
        if reason:
            self._pending.add(shorten_reason(reason))
        self._fire()

    def cancel(self) -> None:
        """Cancel the active timer. Pending reasons are kept."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        snapshot, self._pending = frozenset(self._pending), set()
        logger.debug(f"Quiet period elapsed, triggering with {len(snapshot)} reason(s)")
        try:
            self.on_trigger(snapshot)
        except Exception as e:
            logger.exception(f"Trigger callback failed: {e}")
