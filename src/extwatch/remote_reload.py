"""Reload the target extension in a remote browser.

The client only knows the ``ExtensionsSurface`` capability; how extensions
are enumerated and reloaded (see ``extwatch.cdp``) stays behind it.
"""

import logging
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from extwatch_core.errors import ReloadControlUnavailable, TargetNotFound
from extwatch_core.models import ExtensionInfo, ExtensionTarget, ReloadOutcome

logger = logging.getLogger(__name__)


class ExtensionsSurface(Protocol):
    """The browser's extensions-management surface."""

    async def list_extensions(self) -> list[ExtensionInfo]:
        """Enumerate installed extensions."""
        ...

    async def reload(self, extension_id: str) -> None:
        """Press the reload control of the extension with ``extension_id``."""
        ...


SurfaceOpener = Callable[[], AbstractAsyncContextManager[ExtensionsSurface]]
"""Opens a surface; closing the context releases the page and the connection."""


def find_target(extensions: Sequence[ExtensionInfo], target: ExtensionTarget) -> ExtensionInfo | None:
    """Match by identifier when one is configured, otherwise by display name."""
    if target.identifier:
        return next((ext for ext in extensions if ext.id == target.identifier), None)
    return next((ext for ext in extensions if ext.name == target.display_name), None)


def resolve_target(extensions: Sequence[ExtensionInfo], target: ExtensionTarget) -> ExtensionInfo:
    """Pick the extension to reload.

    Args:
        extensions: Everything visible on the surface
        target: Configured lookup

    Returns:
        The matching extension, which has a reload control

    Raises:
        TargetNotFound: If nothing matches (carries the full list)
        ReloadControlUnavailable: If the match cannot be reloaded
    """
    match = find_target(extensions, target)
    if match is None:
        if target.identifier:
            message = f"Extension with id '{target.identifier}' not found on chrome://extensions."
        else:
            message = f"Extension named '{target.display_name}' not found on chrome://extensions."
        raise TargetNotFound(message, extensions)

    if not match.has_reload_control:
        raise ReloadControlUnavailable(match.name, match.id)

    return match


class RemoteReloadClient:
    """Opens the extensions surface, resolves the target and reloads it."""

    def __init__(self, opener: SurfaceOpener):
        """Initialize client.

        Args:
            opener: Factory returning an async context manager for a surface
        """
        self.opener = opener

    async def reload(self, target: ExtensionTarget) -> ReloadOutcome:
        """Reload ``target``.

        The surface is always closed before this returns or raises.

        Raises:
            NoBrowserContext: If the browser exposes nothing to work in
            TargetNotFound: If no extension matches
            ReloadControlUnavailable: If the match has no reload control
        """
        async with self.opener() as surface:
            extensions = await surface.list_extensions()
            logger.debug(f"Found {len(extensions)} extension(s) on the extensions page")
            match = resolve_target(extensions, target)
            await surface.reload(match.id)

        return ReloadOutcome(name=match.name, id=match.id)
