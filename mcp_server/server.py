"""MCP server implementation.

This module creates the FastMCP server and registers all tools.
Tools are thin wrappers around the core iso_creator build service.

Builds started through MCP run in the server's event loop; poll
get_build for progress.
"""

from dataclasses import asdict
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from pydantic import Field, ValidationError

from iso_creator.builds.models import BuildConfig, BuildJob
from iso_creator.builds.service import BuildService
from iso_creator.errors import BuildNotFoundError, IsoCreatorError
from iso_creator.types import BuildMode
from mcp_server.errors import (
    INTERNAL_ERROR,
    build_not_found,
    from_exception,
    make_error,
    validation_error,
)
from mcp_server.schemas import (
    BuildDetail,
    BuildSummary,
    CreateBuildResponse,
    DetectModulesResponse,
    DeviceSummary,
    DistroSummary,
    GetBuildResponse,
    ListBuildsResponse,
    ListDistrosResponse,
    ModuleSummary,
)

# Create the FastMCP server instance
mcp = FastMCP(
    name="iso-creator",
)

_service: BuildService | None = None


def get_service() -> BuildService:
    """Get the process-wide build service, creating it on first use."""
    global _service
    if _service is None:
        _service = BuildService()
    return _service


def set_service(service: BuildService | None) -> None:
    """Replace the process-wide build service."""
    global _service
    _service = service


def _summary_fields(job: BuildJob) -> dict:
    return {
        "id": job.id,
        "name": job.config.name,
        "distro": job.config.distro,
        "mode": job.config.mode.value,
        "status": job.status.value,
        "progress": job.progress,
        "download_url": job.download_url,
        "error_message": job.error,
        "image_sha256": job.image_sha256,
        "image_size": job.image_size,
        "created_at": job.created_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


@mcp.tool()
def list_distros() -> ListDistrosResponse:
    """List the built-in distribution templates.

    Distributions with supported=False have no bootstrap strategy and
    their builds fail with unsupported_distro.

    Returns:
        ListDistrosResponse with the templates.
    """
    from iso_creator.catalog.distros import list_distros as svc_list_distros

    distros = [
        DistroSummary(
            id=t.id,
            name=t.name,
            description=t.description,
            category=t.category.value,
            package_manager=t.package_manager,
            supported=t.supported,
        )
        for t in svc_list_distros()
    ]
    return ListDistrosResponse(success=True, distros=distros, total=len(distros))


@mcp.tool()
def detect_kernel_modules(
    hardware_raw: Annotated[
        str, Field(description="lspci-style hardware enumeration output")
    ],
    mode: Annotated[
        str, Field(description="Build mode for the kernel config (desktop/server)")
    ] = "desktop",
) -> DetectModulesResponse:
    """Recommend kernel modules for a machine's hardware.

    Returns:
        DetectModulesResponse with devices, modules and a kernel config fragment.
    """
    from iso_creator.hardware.classifier import classify_modules, parse_devices
    from iso_creator.hardware.kernel_config import generate_kernel_config

    try:
        build_mode = BuildMode(mode)
    except ValueError:
        return DetectModulesResponse(
            success=False,
            error=validation_error(
                f"Invalid mode: {mode}. Valid values: desktop, server"
            ).to_dict(),
        )

    devices = parse_devices(hardware_raw)
    modules = classify_modules(devices)
    return DetectModulesResponse(
        success=True,
        devices=[DeviceSummary(**asdict(d)) for d in devices],
        modules=[ModuleSummary(**asdict(m)) for m in modules],
        kernel_config=generate_kernel_config(build_mode, modules),
    )


@mcp.tool()
async def create_build(
    distro: Annotated[str, Field(description="Distribution id, e.g. debian-12")],
    mode: Annotated[str, Field(description="desktop or server")] = "desktop",
    name: Annotated[str, Field(description="Image name")] = "custom-linux",
    overlays: Annotated[
        list[str] | None, Field(description="Software overlay ids")
    ] = None,
    custom_software: Annotated[
        list[str] | None, Field(description="Additional package names")
    ] = None,
    hardware_raw: Annotated[
        str, Field(description="lspci-style output for hardware optimization")
    ] = "",
    ai_mode: Annotated[
        bool, Field(description="Select kernel modules for the given hardware")
    ] = False,
) -> CreateBuildResponse:
    """Queue a build; it runs in the background.

    Returns:
        CreateBuildResponse with the new build id and status.
    """
    try:
        config = BuildConfig(
            distro=distro,
            mode=mode,
            name=name,
            overlays=overlays or [],
            custom_software=custom_software or [],
            hardware_raw=hardware_raw,
            ai_mode=ai_mode,
        )
    except ValidationError as e:
        return CreateBuildResponse(
            success=False,
            error=validation_error(
                "Invalid build configuration",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ).to_dict(),
        )

    try:
        job = await get_service().create_build(config)
    except IsoCreatorError as e:
        return CreateBuildResponse(success=False, error=from_exception(e).to_dict())
    except Exception as e:
        return CreateBuildResponse(
            success=False, error=make_error(INTERNAL_ERROR, str(e)).to_dict()
        )

    return CreateBuildResponse(success=True, build_id=job.id, status=job.status.value)


@mcp.tool()
async def get_build(
    build_id: Annotated[str, Field(description="Build id")],
    log_tail: Annotated[
        int, Field(description="Number of most recent log entries", ge=0)
    ] = 20,
) -> GetBuildResponse:
    """Get a build's status, progress, modules and recent logs.

    Returns:
        GetBuildResponse with the build or a build_not_found error.
    """
    try:
        job = await get_service().get_build(build_id)
    except BuildNotFoundError:
        return GetBuildResponse(success=False, error=build_not_found(build_id).to_dict())

    logs = job.logs[-log_tail:] if log_tail else []
    detail = BuildDetail(
        **_summary_fields(job),
        modules=[ModuleSummary(**asdict(m)) for m in job.modules],
        logs=[entry.model_dump(mode="json") for entry in logs],
    )
    return GetBuildResponse(success=True, build=detail)


@mcp.tool()
async def list_completed_builds() -> ListBuildsResponse:
    """List completed builds with their download URLs.

    Returns:
        ListBuildsResponse with the completed builds.
    """
    jobs = await get_service().list_completed_builds()
    builds = [BuildSummary(**_summary_fields(job)) for job in jobs]
    return ListBuildsResponse(success=True, builds=builds, total=len(builds))


__all__ = [
    "create_build",
    "detect_kernel_modules",
    "get_build",
    "get_service",
    "list_completed_builds",
    "list_distros",
    "mcp",
    "set_service",
]
