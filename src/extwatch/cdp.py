"""Chrome DevTools Protocol implementation of the extensions surface.

Talks to the browser's remote-debugging HTTP endpoints with aiohttp and to a
freshly opened ``chrome://extensions/`` page over a websocket. Everything
that depends on the layout of that page lives in this module.
"""

import asyncio
import itertools
import json
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import websockets

from extwatch_core.errors import CdpError, NoBrowserContext
from extwatch_core.models import ExtensionInfo

logger = logging.getLogger(__name__)

EXTENSIONS_URL = "chrome://extensions/"
EXTENSION_ID_PATTERN = re.compile(r"[a-p]{32}")

# Walks extensions-manager > extensions-item-list > extensions-item shadow roots
LIST_EXTENSIONS_JS = r"""
(() => {
  const manager = document.querySelector("extensions-manager");
  if (!manager || !manager.shadowRoot) {
    return { error: "extensions-manager not available." };
  }
  const itemList = manager.shadowRoot.querySelector("extensions-item-list");
  if (!itemList || !itemList.shadowRoot) {
    return { error: "extensions-item-list not available." };
  }
  return Array.from(itemList.shadowRoot.querySelectorAll("extensions-item")).map((item) => {
    const sr = item.shadowRoot;
    const text = (selector) => ((sr && sr.querySelector(selector)?.textContent) || "").trim();
    return {
      name: text("#name"),
      idText: text("#extension-id"),
      hasReloadControl: Boolean(sr && sr.querySelector("#dev-reload-button")),
    };
  });
})()
"""

RELOAD_EXTENSION_JS = r"""
((targetId) => {
  const manager = document.querySelector("extensions-manager");
  const itemList = manager?.shadowRoot?.querySelector("extensions-item-list");
  const items = Array.from(itemList?.shadowRoot?.querySelectorAll("extensions-item") || []);
  for (const item of items) {
    const idText = item.shadowRoot?.querySelector("#extension-id")?.textContent || "";
    if (!idText.includes(targetId)) continue;
    const button = item.shadowRoot.querySelector("#dev-reload-button");
    if (!button) return false;
    button.click();
    return true;
  }
  return false;
})(%s)
"""

PAGE_READY_JS = (
    f"location.href.startsWith({json.dumps(EXTENSIONS_URL)}) && document.readyState !== 'loading'"
)


def parse_extensions(payload: Any) -> list[ExtensionInfo]:
    """Convert the page's enumeration result into ExtensionInfo records.

    Raises:
        CdpError: If the page reported an error or returned something else
    """
    if isinstance(payload, dict) and "error" in payload:
        raise CdpError(str(payload["error"]))
    if not isinstance(payload, list):
        raise CdpError(f"Unexpected extensions payload: {payload!r}")

    extensions = []
    for entry in payload:
        match = EXTENSION_ID_PATTERN.search(entry.get("idText", ""))
        extensions.append(
            ExtensionInfo(
                name=entry.get("name", ""),
                id=match.group(0) if match else "",
                has_reload_control=bool(entry.get("hasReloadControl")),
            )
        )
    return extensions


class CdpSession:
    """Request/response channel over one target's DevTools websocket."""

    def __init__(self, ws, timeout: float = 10.0):
        self.ws = ws
        self.timeout = timeout
        self._ids = itertools.count(1)

    async def send(self, method: str, params: dict | None = None) -> dict:
        """Send a CDP command and wait for its response.

        Events arriving in between are skipped.

        Raises:
            CdpError: If the browser answered with an error
        """
        msg_id = next(self._ids)
        request: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            request["params"] = params

        async def wait_response() -> dict:
            while True:
                response = json.loads(await self.ws.recv())
                if response.get("id") == msg_id:
                    return response

        try:
            await self.ws.send(json.dumps(request))
            response = await asyncio.wait_for(wait_response(), self.timeout)
        except asyncio.TimeoutError as e:
            raise CdpError(f"Timed out waiting for {method}") from e
        except websockets.exceptions.ConnectionClosed as e:
            raise CdpError(f"Page connection closed during {method}: {e}") from e

        if "error" in response:
            raise CdpError(f"{method} failed: {response['error'].get('message', response['error'])}")
        return response.get("result", {})

    async def evaluate(self, expression: str) -> Any:
        """Evaluate JavaScript in the page and return the value."""
        result = await self.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        if "exceptionDetails" in result:
            details = result["exceptionDetails"]
            text = details.get("exception", {}).get("description") or details.get("text", "")
            raise CdpError(f"Page script failed: {text}")
        return result.get("result", {}).get("value")


class CdpExtensionsPage:
    """``ExtensionsSurface`` backed by an open chrome://extensions page."""

    def __init__(self, session: CdpSession):
        self.session = session

    async def wait_until_loaded(self, timeout: float = 30.0, settle: float = 0.25) -> None:
        """Wait for the page to finish loading, then let it settle.

        Raises:
            CdpError: If the page is not ready within ``timeout`` seconds
        """

        async def poll() -> None:
            while not await self.session.evaluate(PAGE_READY_JS):
                await asyncio.sleep(0.05)

        try:
            await asyncio.wait_for(poll(), timeout)
        except asyncio.TimeoutError as e:
            raise CdpError(f"{EXTENSIONS_URL} did not load within {timeout:.0f}s") from e
        await asyncio.sleep(settle)

    async def list_extensions(self) -> list[ExtensionInfo]:
        return parse_extensions(await self.session.evaluate(LIST_EXTENSIONS_JS))

    async def reload(self, extension_id: str) -> None:
        clicked = await self.session.evaluate(RELOAD_EXTENSION_JS % json.dumps(extension_id))
        if not clicked:
            raise CdpError(f"Reload control for {extension_id} disappeared before it was clicked")


class CdpSurfaceOpener:
    """Opens a chrome://extensions page on a browser's remote-debugging endpoint.

    Calling the opener returns an async context manager. On exit the page
    websocket is closed, the page is closed and the HTTP session released,
    whether or not the body raised.
    """

    def __init__(
        self,
        browser_url: str = "http://localhost:9222",
        navigation_timeout: float = 30.0,
        settle_delay: float = 0.25,
        request_timeout: float = 10.0,
    ):
        """Initialize opener.

        Args:
            browser_url: Remote debugging endpoint
            navigation_timeout: Seconds to wait for the page to load
            settle_delay: Seconds to wait after load before enumerating
            request_timeout: Seconds allowed per HTTP request or CDP command
        """
        self.browser_url = browser_url.rstrip("/")
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self.request_timeout = request_timeout

    def __call__(self):
        return self.open()

    async def _get_json(self, http: aiohttp.ClientSession, path: str, method: str = "GET") -> Any:
        async with http.request(method, f"{self.browser_url}{path}") as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    async def _ensure_browser_context(self, http: aiohttp.ClientSession) -> dict:
        try:
            version = await self._get_json(http, "/json/version")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NoBrowserContext(f"No Chrome context available over CDP at {self.browser_url}: {e}") from e

        if not isinstance(version, dict) or not version.get("webSocketDebuggerUrl"):
            raise NoBrowserContext(f"No Chrome context available over CDP at {self.browser_url}.")
        logger.debug(f"Connected to {version.get('Browser', 'browser')} at {self.browser_url}")
        return version

    async def _new_page(self, http: aiohttp.ClientSession) -> dict:
        try:
            target = await self._get_json(http, f"/json/new?{EXTENSIONS_URL}", method="PUT")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CdpError(f"Failed to open {EXTENSIONS_URL}: {e}") from e

        if not isinstance(target, dict) or not target.get("webSocketDebuggerUrl"):
            raise CdpError(f"Browser returned no debuggable page for {EXTENSIONS_URL}")
        return target

    async def _close_page(self, http: aiohttp.ClientSession, target_id: str) -> None:
        try:
            async with http.get(f"{self.browser_url}/json/close/{target_id}") as resp:
                await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Failed to close page {target_id}: {e}")

    @asynccontextmanager
    async def open(self) -> AsyncIterator[CdpExtensionsPage]:
        """Open the extensions page and yield a surface for it.

        Raises:
            NoBrowserContext: If the endpoint is unreachable or exposes no browser
            CdpError: If the page cannot be opened or driven
        """
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as http:
            await self._ensure_browser_context(http)
            target = await self._new_page(http)
            try:
                try:
                    ws = await websockets.connect(target["webSocketDebuggerUrl"], max_size=None)
                except (OSError, websockets.exceptions.WebSocketException) as e:
                    raise CdpError(f"Failed to attach to {EXTENSIONS_URL}: {e}") from e
                try:
                    page = CdpExtensionsPage(CdpSession(ws, timeout=self.request_timeout))
                    await page.wait_until_loaded(self.navigation_timeout, self.settle_delay)
                    yield page
                finally:
                    await ws.close()
            finally:
                await self._close_page(http, target["id"])
