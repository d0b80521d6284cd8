"""Tests for the remote reload client and target resolution."""

import pytest
from conftest import VIBBIT_ID, FakeSurface, make_opener

from extwatch.remote_reload import RemoteReloadClient, find_target, resolve_target
from extwatch_core.errors import NoBrowserContext, ReloadControlUnavailable, TargetNotFound
from extwatch_core.models import ExtensionInfo, ExtensionTarget, ReloadOutcome

OTHER_ID = "ponmlkjihgfedcbaponmlkjihgfedcba"

VIBBIT = ExtensionInfo(name="Vibbit", id=VIBBIT_ID, has_reload_control=True)
OTHER = ExtensionInfo(name="Other", id=OTHER_ID, has_reload_control=True)


class TestResolveTarget:
    """Pure target resolution."""

    def test_identifier_takes_precedence_over_name(self):
        target = ExtensionTarget(display_name="Other", identifier=VIBBIT_ID)
        assert find_target([OTHER, VIBBIT], target) is VIBBIT

    def test_match_by_name(self):
        target = ExtensionTarget(display_name="Other")
        assert resolve_target([VIBBIT, OTHER], target) is OTHER

    def test_unknown_identifier(self):
        target = ExtensionTarget(display_name="Vibbit", identifier=OTHER_ID)
        with pytest.raises(TargetNotFound, match=f"id '{OTHER_ID}'"):
            resolve_target([VIBBIT], target)

    def test_missing_reload_control(self):
        no_dev_mode = ExtensionInfo(name="Vibbit", id=VIBBIT_ID, has_reload_control=False)
        with pytest.raises(ReloadControlUnavailable, match="Developer mode"):
            resolve_target([no_dev_mode], ExtensionTarget(display_name="Vibbit"))


class TestRemoteReloadClient:
    """Reload through an ExtensionsSurface."""

    @pytest.mark.asyncio
    async def test_reload_by_explicit_identifier(self):
        surface = FakeSurface([VIBBIT])
        client = RemoteReloadClient(make_opener(surface))

        outcome = await client.reload(ExtensionTarget(display_name="Vibbit", identifier=VIBBIT_ID))

        assert outcome == ReloadOutcome(name="Vibbit", id=VIBBIT_ID)
        assert outcome.ok
        assert surface.reloaded == [VIBBIT_ID]
        assert surface.closed

    @pytest.mark.asyncio
    async def test_name_not_found_carries_full_list(self):
        surface = FakeSurface([OTHER])
        client = RemoteReloadClient(make_opener(surface))

        with pytest.raises(TargetNotFound) as exc_info:
            await client.reload(ExtensionTarget(display_name="Vibbit"))

        assert exc_info.value.available_targets == [OTHER]
        assert "Extension named 'Vibbit' not found" in str(exc_info.value)
        assert "Other" in str(exc_info.value)
        assert surface.reloaded == []
        assert surface.closed

    @pytest.mark.asyncio
    async def test_reload_control_unavailable_closes_surface(self):
        surface = FakeSurface([ExtensionInfo(name="Vibbit", id=VIBBIT_ID, has_reload_control=False)])
        client = RemoteReloadClient(make_opener(surface))

        with pytest.raises(ReloadControlUnavailable):
            await client.reload(ExtensionTarget(display_name="Vibbit"))

        assert surface.closed

    @pytest.mark.asyncio
    async def test_no_browser_context(self):
        surface = FakeSurface([])
        error = NoBrowserContext("No Chrome context available over CDP.")
        client = RemoteReloadClient(make_opener(surface, fail_on_open=error))

        with pytest.raises(NoBrowserContext):
            await client.reload(ExtensionTarget(display_name="Vibbit"))

    @pytest.mark.asyncio
    async def test_surface_error_still_closes(self):
        surface = FakeSurface([VIBBIT])

        async def broken_reload(extension_id):
            raise RuntimeError("page crashed")

        surface.reload = broken_reload
        client = RemoteReloadClient(make_opener(surface))

        with pytest.raises(RuntimeError, match="page crashed"):
            await client.reload(ExtensionTarget(display_name="Vibbit"))

        assert surface.closed


class TestTargetNotFoundMessage:
    """Diagnostics for TargetNotFound."""

    def test_message_without_targets(self):
        assert str(TargetNotFound("Nothing here.")) == "Nothing here."

    def test_message_lists_targets(self):
        error = TargetNotFound("Missing.", [VIBBIT, ExtensionInfo("Disabled", "", False)])
        text = str(error)
        assert f"Vibbit ({VIBBIT_ID}, reload=yes)" in text
        assert "Disabled (?, reload=no)" in text
