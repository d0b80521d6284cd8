"""extwatch: Rebuild a browser extension on change and reload it in a running browser."""

__version__ = "0.1.0"

# Public API
from extwatch.build_runner import BuildRunner
from extwatch.cdp import CdpSurfaceOpener
from extwatch.controller import DevLoopController
from extwatch.orchestrator import BuildReloadOrchestrator
from extwatch.remote_reload import ExtensionsSurface, RemoteReloadClient

__all__ = [
    "__version__",
    # Primary components
    "DevLoopController",
    "BuildReloadOrchestrator",
    "BuildRunner",
    "RemoteReloadClient",
    "ExtensionsSurface",
    "CdpSurfaceOpener",
]
