"""extwatch-core: Shared models and utilities for the extwatch dev loop."""

__version__ = "0.1.0"

# Config
from extwatch_core.config import ExtWatchConfig, load_config, resolve_target

# Errors
from extwatch_core.errors import (
    BuildError,
    BuildFailed,
    ConfigError,
    ExtWatchError,
    ManifestError,
    NoBrowserContext,
    ReloadControlUnavailable,
    ReloadError,
    SpawnFailed,
    TargetNotFound,
    WatchStartupError,
)

# Models
from extwatch_core.models import (
    ChangeEvent,
    ChangeKind,
    CycleResult,
    ExtensionInfo,
    ExtensionTarget,
    OrchestratorState,
    ReloadOutcome,
)

# Notification
from extwatch_core.notifier import LoggingNotifier, NoOpNotifier, Notifier

# Debounce
from extwatch_core.reasons import normalize_reason, shorten_reason
from extwatch_core.scheduler import CoalescingScheduler

__all__ = [
    "__version__",
    # Config
    "ExtWatchConfig",
    "load_config",
    "resolve_target",
    # Errors
    "ExtWatchError",
    "BuildError",
    "SpawnFailed",
    "BuildFailed",
    "ReloadError",
    "NoBrowserContext",
    "TargetNotFound",
    "ReloadControlUnavailable",
    "ConfigError",
    "ManifestError",
    "WatchStartupError",
    # Models
    "ChangeEvent",
    "ChangeKind",
    "CycleResult",
    "ExtensionInfo",
    "ExtensionTarget",
    "OrchestratorState",
    "ReloadOutcome",
    # Notification
    "Notifier",
    "NoOpNotifier",
    "LoggingNotifier",
    # Debounce
    "CoalescingScheduler",
    "normalize_reason",
    "shorten_reason",
]
