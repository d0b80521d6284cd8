"""Shared data models for extwatch_core."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """Kind of filesystem change reported by an event source."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChangeEvent:
    """A single raw change notification from a watched root."""

    root: Path
    """Watched root the change happened under."""

    kind: ChangeKind
    """What happened to the path."""

    relative_path: str
    """Path of the changed entry, relative to ``root``."""


class OrchestratorState(str, Enum):
    """Lifecycle state of the build/reload orchestrator."""

    IDLE = "idle"
    BUILDING = "building"
    BUILDING_RERUN_QUEUED = "building+rerun_queued"


@dataclass(frozen=True)
class ExtensionTarget:
    """The extension to reload, resolved once at startup."""

    display_name: str
    """Name from the extension manifest (or the default label)."""

    identifier: str | None = None
    """Explicit extension id. Takes precedence over ``display_name``."""

    @property
    def lookup_label(self) -> str:
        """Label used to describe the lookup in console output."""
        return self.identifier or self.display_name


@dataclass(frozen=True)
class ExtensionInfo:
    """One installed extension as seen on the extensions-management surface."""

    name: str
    id: str
    has_reload_control: bool = False


@dataclass(frozen=True)
class ReloadOutcome:
    """Result of a successful reload attempt."""

    name: str
    id: str
    ok: bool = True


@dataclass
class CycleResult:
    """Summary of one build-then-reload cycle.

    Handed to ``on_cycle_finished`` listeners. Never persisted.
    """

    reasons: frozenset[str]
    """Reason snapshot that started the cycle."""

    started_at: datetime
    finished_at: datetime | None = None

    outcome: ReloadOutcome | None = None
    """Set when the extension was reloaded."""

    error: Exception | None = None
    """Set when the build or the reload failed."""

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is not None


@dataclass
class StartupSummary:
    """Resolved settings printed once when the watch session starts."""

    browser_url: str
    lookup_label: str
    watch_roots: list[str] = field(default_factory=list)
    debounce_ms: int = 300

    def lines(self) -> list[str]:
        return [
            "Watching for extension edits...",
            f"- Browser URL: {self.browser_url}",
            f"- Extension lookup: {self.lookup_label}",
            f"- Watch targets: {', '.join(self.watch_roots)}",
            f"- Debounce: {self.debounce_ms}ms",
            "Press Ctrl+C to stop.",
        ]
