"""Abstract watcher protocol for file watching implementations."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

from extwatch_core.models import ChangeEvent

DEFAULT_IGNORE_DIRS = [".git", "node_modules", "__pycache__"]


@dataclass
class WatchRootConfig:
    """Configuration for one watched root."""

    dir: Path
    """Directory (or file) to watch recursively."""

    ignore_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    """Directory names whose contents never produce events."""


ChangeCallback = Callable[[ChangeEvent], None]


class EventSource(Protocol):
    """Protocol for change event sources."""

    def add_watch(self, config: WatchRootConfig) -> bool:
        """Add a root. Returns False if the root could not be watched."""
        ...

    def start(self) -> None:
        """Start delivering events."""
        ...

    def stop(self) -> None:
        """Stop delivering events and release all watches."""
        ...
