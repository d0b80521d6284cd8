"""CLI entry point for extwatch: watch sources, rebuild and reload the extension."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from extwatch import __version__
from extwatch.controller import DevLoopController
from extwatch_core.config import (
    DEFAULT_BROWSER_URL,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DEBOUNCE_MS,
    ExtWatchConfig,
    load_config,
)
from extwatch_core.errors import ExtWatchError
from extwatch_core.notifier import CONSOLE_LOGGER, LoggingNotifier

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Arguments to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="extwatch",
        description="Rebuild a browser extension on source changes and reload it over remote debugging.",
        epilog="Examples:\n"
        "  extwatch                                  # Watch src/ and extension/, run npm run build\n"
        "  extwatch --watch src --watch assets       # Custom watch roots\n"
        "  extwatch --extension-id abcdefghijklmnopabcdefghijklmnop\n"
        "  extwatch --build-command 'make extension' --debounce-ms 500",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--project-root",
        default=".",
        help="Project directory: build cwd, base for watch paths and the manifest (default: .)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help=f"Path to TOML config file (default: {DEFAULT_CONFIG_FILE} in the project root, if present)",
    )
    parser.add_argument(
        "--browser-url",
        default=None,
        help=f"Browser remote debugging endpoint (default: {DEFAULT_BROWSER_URL})",
    )
    parser.add_argument(
        "--extension-id",
        default=None,
        help="Extension id to reload (default: look up the manifest name)",
    )
    parser.add_argument(
        "--watch",
        action="append",
        default=None,
        metavar="PATH",
        help="Path to watch, relative to the project root (repeatable)",
    )
    parser.add_argument(
        "--debounce-ms",
        default=None,
        help=f"Quiet period before rebuilding, in milliseconds (default: {DEFAULT_DEBOUNCE_MS})",
    )
    parser.add_argument(
        "--build-command",
        default=None,
        help="Build command line (default: npm run build)",
    )
    parser.add_argument(
        "--no-initial-build",
        action="store_true",
        help="Do not build and reload once at startup",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    """Timestamped console output; debug output for our packages with ``verbose``."""
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger(CONSOLE_LOGGER).setLevel(logging.INFO)
    if verbose:
        logging.getLogger("extwatch").setLevel(logging.DEBUG)
        logging.getLogger("extwatch_core").setLevel(logging.DEBUG)


def config_from_args(args: argparse.Namespace) -> ExtWatchConfig:
    """Load config, with CLI flags taking precedence over file and environment."""
    overrides = {
        "browser_url": args.browser_url,
        "extension_id": args.extension_id,
        "watch_paths": args.watch,
        "debounce_ms": args.debounce_ms,
        "build_command": args.build_command,
    }
    if args.no_initial_build:
        overrides["initial_build"] = False
    return load_config(Path(args.project_root), config_path=args.config, overrides=overrides)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows: Ctrl+C arrives as KeyboardInterrupt instead
            logger.debug(f"Cannot install handler for {sig!r}")


async def run_session(controller: DevLoopController) -> None:
    """Run the watch session until SIGINT or SIGTERM."""
    stop = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), stop)
    await controller.run(stop)
    controller.notifier.info("Stopped extension watch reload.")


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the extwatch CLI.

    Handles:
    - Argument parsing and logging setup
    - Config and manifest loading
    - Running the watch session until interrupted
    - Error handling and exit codes
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = config_from_args(args)
        controller = DevLoopController(config, notifier=LoggingNotifier())
        asyncio.run(run_session(controller))
    except KeyboardInterrupt:
        print("\nStopped extension watch reload.")
        sys.exit(0)
    except ExtWatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
