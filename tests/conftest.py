"""Pytest configuration and fixtures."""

import asyncio
import json
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from extwatch_core.config import ExtWatchConfig  # noqa: E402
from extwatch_core.errors import BuildFailed  # noqa: E402
from extwatch_core.models import ExtensionInfo, ReloadOutcome  # noqa: E402

VIBBIT_ID = "abcdefghijklmnopabcdefghijklmnop"


class FakeBuilder:
    """Build runner stand-in. Optionally blocks on ``gate`` or sleeps."""

    def __init__(self, fail: Exception | None = None, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.gate = None
        self.calls = 0
        self.running = 0
        self.max_running = 0

    async def run(self) -> None:
        self.calls += 1
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail is not None:
                raise self.fail
        finally:
            self.running -= 1


class FakeReloader:
    """Reload client stand-in that records the targets it was asked for."""

    def __init__(self, outcome: ReloadOutcome | None = None, fail: Exception | None = None):
        self.outcome = outcome or ReloadOutcome(name="Vibbit", id=VIBBIT_ID)
        self.fail = fail
        self.targets = []

    async def reload(self, target) -> ReloadOutcome:
        self.targets.append(target)
        if self.fail is not None:
            raise self.fail
        return self.outcome


class FakeSurface:
    """In-memory extensions surface."""

    def __init__(self, extensions: list[ExtensionInfo]):
        self.extensions = extensions
        self.reloaded: list[str] = []
        self.closed = False

    async def list_extensions(self) -> list[ExtensionInfo]:
        return list(self.extensions)

    async def reload(self, extension_id: str) -> None:
        self.reloaded.append(extension_id)


def make_opener(surface: FakeSurface, fail_on_open: Exception | None = None):
    """Opener returning ``surface`` and marking it closed on exit."""

    @asynccontextmanager
    async def opener():
        if fail_on_open is not None:
            raise fail_on_open
        try:
            yield surface
        finally:
            surface.closed = True

    return opener


@pytest.fixture
def fake_builder():
    return FakeBuilder()


@pytest.fixture
def failing_builder():
    return FakeBuilder(fail=BuildFailed(2, "npm run build"))


@pytest.fixture
def fake_reloader():
    return FakeReloader()


@pytest.fixture
def project(tmp_path):
    """A minimal extension project with a manifest and two watch roots."""
    (tmp_path / "src").mkdir()
    (tmp_path / "extension").mkdir()
    (tmp_path / "extension" / "manifest.json").write_text(json.dumps({"name": "Vibbit", "manifest_version": 3}))
    return tmp_path


@pytest.fixture
def project_config(project):
    return ExtWatchConfig(project_root=project, debounce_ms=20)
