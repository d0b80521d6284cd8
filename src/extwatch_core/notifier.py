"""Pluggable notification protocol for extwatch.

Decouples the orchestrator's console lines from the logging setup.
Can be replaced with custom handlers for testing or embedding.
"""

import logging
from typing import Protocol

CONSOLE_LOGGER = "extwatch.console"


class Notifier(Protocol):
    """Protocol for notifications - host can provide custom implementation."""

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...


class NoOpNotifier:
    """Silent notifier - default when the orchestrator is embedded."""

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        pass

    def error(self, msg: str) -> None:
        pass


class LoggingNotifier:
    """Implementation using stdlib logging - used by the CLI."""

    def __init__(self, logger_name: str = CONSOLE_LOGGER):
        self._logger = logging.getLogger(logger_name)

    def info(self, msg: str) -> None:
        self._logger.info(msg)

    def warning(self, msg: str) -> None:
        self._logger.warning(msg)

    def error(self, msg: str) -> None:
        self._logger.error(msg)


class RecordingNotifier:
    """Keeps every message in memory. Useful for embedding and tests."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def info(self, msg: str) -> None:
        self.messages.append(("info", msg))

    def warning(self, msg: str) -> None:
        self.messages.append(("warning", msg))

    def error(self, msg: str) -> None:
        self.messages.append(("error", msg))

    def texts(self, level: str | None = None) -> list[str]:
        return [text for lvl, text in self.messages if level is None or lvl == level]
