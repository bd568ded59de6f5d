"""Pydantic schemas for MCP tool responses.

These schemas define the structured output formats for MCP tools,
ensuring consistent JSON responses across all tools.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class DistroSummary(BaseModel):
    """Summary of a distribution template."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    description: str
    category: str
    package_manager: str | None = None
    supported: bool


class ListDistrosResponse(BaseModel):
    """Response for list_distros tool."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    distros: list[DistroSummary]
    total: int
    error: dict[str, Any] | None = None


class DeviceSummary(BaseModel):
    """One parsed hardware device."""

    model_config = ConfigDict(extra="forbid")

    slot: str
    device_type: str
    device_name: str


class ModuleSummary(BaseModel):
    """One kernel module recommendation."""

    model_config = ConfigDict(extra="forbid")

    module_name: str
    reason: str
    enabled: bool


class DetectModulesResponse(BaseModel):
    """Response for detect_kernel_modules tool."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    devices: list[DeviceSummary] = []
    modules: list[ModuleSummary] = []
    kernel_config: str | None = None
    error: dict[str, Any] | None = None


class CreateBuildResponse(BaseModel):
    """Response for create_build tool."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    build_id: str | None = None
    status: str | None = None
    error: dict[str, Any] | None = None


class BuildSummary(BaseModel):
    """Summary of a build job."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    distro: str
    mode: str
    status: str
    progress: int
    download_url: str | None = None
    error_message: str | None = None
    image_sha256: str | None = None
    image_size: int | None = None
    created_at: str
    completed_at: str | None = None


class BuildDetail(BuildSummary):
    """Full build job details with recent logs."""

    model_config = ConfigDict(extra="forbid")

    modules: list[ModuleSummary] = []
    logs: list[dict[str, Any]] = []


class GetBuildResponse(BaseModel):
    """Response for get_build tool."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    build: BuildDetail | None = None
    error: dict[str, Any] | None = None


class ListBuildsResponse(BaseModel):
    """Response for list_completed_builds tool."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    builds: list[BuildSummary]
    total: int
    error: dict[str, Any] | None = None


__all__ = [
    "BuildDetail",
    "BuildSummary",
    "CreateBuildResponse",
    "DetectModulesResponse",
    "DeviceSummary",
    "DistroSummary",
    "GetBuildResponse",
    "ListBuildsResponse",
    "ListDistrosResponse",
    "ModuleSummary",
]
