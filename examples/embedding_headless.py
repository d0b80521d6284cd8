#!/usr/bin/env python3
"""
Example: Headless Dev Loop
Shows how to embed DevLoopController in another asyncio program.

This example demonstrates:
- Loading config the same way the CLI does
- Observing every build/reload cycle through on_cycle_finished
- Triggering a rebuild programmatically
- Stopping the session from code instead of a signal
"""

import asyncio
import sys

try:
    from extwatch import DevLoopController
    from extwatch.cli import configure_logging
    from extwatch_core import CycleResult, ExtWatchError, load_config
    from extwatch_core.notifier import LoggingNotifier
except ImportError:
    print("Error: Install extwatch first: pip install -e .")
    sys.exit(1)


class CycleTracker:
    """Counts cycle outcomes as they arrive."""

    def __init__(self):
        self.succeeded = 0
        self.failed = 0

    def __call__(self, result: CycleResult) -> None:
        if result.ok:
            self.succeeded += 1
            print(f"✓ reloaded {result.outcome.name} for {len(result.reasons)} change(s)")
        else:
            self.failed += 1
            print(f"✗ {type(result.error).__name__}: {result.error}")


async def main(project_root: str = ".", run_for: float = 60.0) -> int:
    configure_logging()
    try:
        config = load_config(project_root)
        tracker = CycleTracker()
        controller = DevLoopController(config, notifier=LoggingNotifier(), on_cycle_finished=tracker)
    except ExtWatchError as e:
        print(f"❌ {e}")
        return 1

    stop = asyncio.Event()
    session = asyncio.create_task(controller.run(stop))

    # Force one extra rebuild a few seconds in
    await asyncio.sleep(5)
    controller.request_build("example: forced rebuild")

    await asyncio.sleep(run_for)
    stop.set()
    await session
    await controller.orchestrator.aclose()

    print(f"\nDone: {tracker.succeeded} succeeded, {tracker.failed} failed")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(*sys.argv[1:2])))
