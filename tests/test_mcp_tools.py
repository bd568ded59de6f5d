"""Tests for MCP tools with error code verification.

These tests verify:
- MCP tools return correct structured responses
- Error codes are stable and match the core error codes
- Builds started through MCP run to completion in the background
"""

import pytest

from iso_creator.builds.service import BuildService
from mcp_server.errors import BUILD_NOT_FOUND, VALIDATION_ERROR
from mcp_server.server import (
    create_build,
    detect_kernel_modules,
    get_build,
    get_service,
    list_completed_builds,
    list_distros,
    set_service,
)


@pytest.fixture(autouse=True)
def mcp_service(service: BuildService):
    """Point the MCP tools at the test build service."""
    set_service(service)
    yield service
    set_service(None)


class TestListDistros:
    """Tests for list_distros MCP tool."""

    def test_list_distros(self):
        """All templates are listed with their support flag."""
        result = list_distros()

        assert result.success is True
        assert result.total == len(result.distros)
        by_id = {d.id: d for d in result.distros}
        assert by_id["fedora-39"].package_manager == "dnf"
        assert by_id["nixos"].supported is False


class TestDetectKernelModules:
    """Tests for detect_kernel_modules MCP tool."""

    def test_detect(self, sample_lspci):
        """Devices and modules are returned for hardware text."""
        result = detect_kernel_modules(hardware_raw=sample_lspci)

        assert result.success is True
        assert len(result.devices) == 7
        nouveau = next(m for m in result.modules if m.module_name == "nouveau")
        assert nouveau.enabled is False
        assert "CONFIG_DRM_I915=m" in result.kernel_config

    def test_invalid_mode(self):
        """An unknown mode is a validation error."""
        result = detect_kernel_modules(hardware_raw="", mode="gaming")

        assert result.success is False
        assert result.error["code"] == VALIDATION_ERROR


class TestCreateBuild:
    """Tests for create_build MCP tool."""

    @pytest.mark.asyncio
    async def test_create_and_complete(self, mcp_service):
        """A queued build completes and appears in the gallery."""
        result = await create_build(distro="debian", name="mcp-os", overlays=["docker"])

        assert result.success is True
        assert result.status == "queued"
        assert result.build_id

        await mcp_service.drain()
        detail = await get_build(build_id=result.build_id)
        assert detail.success is True
        assert detail.build.status == "completed"
        assert detail.build.progress == 100
        assert detail.build.download_url

        gallery = await list_completed_builds()
        assert gallery.total == 1
        assert gallery.builds[0].name == "mcp-os"

    @pytest.mark.asyncio
    async def test_invalid_config(self):
        """Invalid parameters are a validation error with details."""
        result = await create_build(distro="debian", name="bad name")

        assert result.success is False
        assert result.build_id is None
        assert result.error["code"] == VALIDATION_ERROR
        assert result.error["details"]["errors"]

    @pytest.mark.asyncio
    async def test_invalid_mode(self):
        """An unknown build mode is a validation error."""
        result = await create_build(distro="debian", mode="gaming")
        assert result.success is False
        assert result.error["code"] == VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_ai_mode_records_modules(self, mcp_service, sample_lspci):
        """Hardware optimization modules are visible on the build."""
        result = await create_build(
            distro="debian", hardware_raw=sample_lspci, ai_mode=True
        )
        await mcp_service.drain()

        detail = await get_build(build_id=result.build_id)
        names = [m.module_name for m in detail.build.modules]
        assert "iwlwifi" in names


class TestGetBuild:
    """Tests for get_build MCP tool."""

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Unknown ids return build_not_found."""
        result = await get_build(build_id="missing")

        assert result.success is False
        assert result.build is None
        assert result.error["code"] == BUILD_NOT_FOUND
        assert result.error["details"] == {"build_id": "missing"}

    @pytest.mark.asyncio
    async def test_failed_build(self, mcp_service):
        """Failed builds carry their error message."""
        result = await create_build(distro="nixos")
        await mcp_service.drain()

        detail = await get_build(build_id=result.build_id)
        assert detail.build.status == "failed"
        assert detail.build.error_message == "Unsupported distribution: nixos"

    @pytest.mark.asyncio
    async def test_log_tail(self, mcp_service):
        """log_tail limits the number of returned log entries."""
        result = await create_build(distro="debian")
        await mcp_service.drain()

        detail = await get_build(build_id=result.build_id, log_tail=2)
        assert len(detail.build.logs) == 2
        assert detail.build.logs[-1]["message"] == "Build completed successfully"

        none = await get_build(build_id=result.build_id, log_tail=0)
        assert none.build.logs == []


class TestServiceWiring:
    """Tests for the process-wide service."""

    def test_set_service(self, mcp_service):
        """get_service returns the configured service."""
        assert get_service() is mcp_service
