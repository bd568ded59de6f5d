"""Distribution and overlay catalog endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from fastapi import status as http_status
from pydantic import BaseModel, Field

from iso_creator.catalog.distros import list_distros
from iso_creator.catalog.overlays import (
    OVERLAY_PACKAGES,
    OverlayValidation,
    validate_overlays,
)

router = APIRouter()


class ValidateOverlaysRequest(BaseModel):
    """Request body for overlay validation."""

    distro: str = Field(min_length=1)
    overlays: list[str] = Field(default_factory=list)
    custom_software: list[str] = Field(default_factory=list)


@router.get("")
def list_distros_endpoint() -> list[dict[str, Any]]:
    """List built-in distribution templates."""
    return [
        {**t.model_dump(mode="json"), "supported": t.supported} for t in list_distros()
    ]


@router.get("/overlays")
def list_overlays_endpoint(
    manager: str = Query("apt", description="Package manager"),
) -> dict[str, list[str]]:
    """List overlays and their packages for a package manager.

    Raises:
        HTTPException: 400 if the package manager is unknown.
    """
    mapping = OVERLAY_PACKAGES.get(manager)
    if mapping is None:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "invalid_package_manager",
                "message": f"Invalid package manager: {manager}. "
                f"Valid values: {', '.join(sorted(OVERLAY_PACKAGES))}",
            },
        )
    return {overlay: list(packages) for overlay, packages in sorted(mapping.items())}


@router.post("/validate-overlays")
def validate_overlays_endpoint(request: ValidateOverlaysRequest) -> OverlayValidation:
    """Report how each selected overlay will be installed."""
    return validate_overlays(request.distro, request.overlays, request.custom_software)
