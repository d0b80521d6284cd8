"""Error taxonomy for the watch/build/reload loop.

Build and reload errors are terminal to a single cycle only; the orchestrator
reports them and keeps watching. Config and watch startup errors abort the
process before the loop starts.
"""

from collections.abc import Sequence

from extwatch_core.models import ExtensionInfo


class ExtWatchError(Exception):
    """Base class for all extwatch errors."""


# Build step


class BuildError(ExtWatchError):
    """The build step did not succeed."""


class SpawnFailed(BuildError):
    """The build process could not be started at all."""

    def __init__(self, command: str, cause: BaseException | None = None):
        self.command = command
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to start '{command}'{detail}")


class BuildFailed(BuildError):
    """The build process exited with a non-zero code."""

    def __init__(self, exit_code: int, command: str):
        self.exit_code = exit_code
        self.command = command
        super().__init__(f"{command} exited with code {exit_code}")


# Reload step


class ReloadError(ExtWatchError):
    """The remote browser could not reload the extension."""


class NoBrowserContext(ReloadError):
    """The remote browser exposes no browsing context to work in."""


class CdpError(ReloadError):
    """The DevTools protocol returned an error or an unexpected payload."""


class TargetNotFound(ReloadError):
    """No installed extension matches the configured id or name."""

    def __init__(self, message: str, available_targets: Sequence[ExtensionInfo] = ()):
        self.message = message
        self.available_targets = list(available_targets)
        super().__init__(message)

    def __str__(self) -> str:
        if not self.available_targets:
            return self.message
        summary = ", ".join(
            f"{t.name or '?'} ({t.id or '?'}, reload={'yes' if t.has_reload_control else 'no'})"
            for t in self.available_targets
        )
        return f"{self.message} Available extensions: {summary}."


class ReloadControlUnavailable(ReloadError):
    """The target exists but its developer-mode reload control is missing."""

    def __init__(self, name: str, extension_id: str):
        self.name = name
        self.extension_id = extension_id
        super().__init__(
            f"Reload button unavailable for '{name}' ({extension_id}). "
            "Ensure Developer mode is enabled on chrome://extensions."
        )


# Startup


class ConfigError(ExtWatchError):
    """Configuration could not be loaded or is invalid."""


class ManifestError(ConfigError):
    """The extension manifest could not be read."""


class WatchStartupError(ExtWatchError):
    """None of the configured roots could be watched."""
