"""Build management endpoints.

- POST /builds - Queue a build
- GET /builds - List builds
- GET /builds/{id} - Get build by ID
- GET /gallery - Completed builds
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status

from iso_creator.builds.models import BuildConfig, BuildJob
from iso_creator.builds.service import BuildService
from iso_creator.errors import BuildNotFoundError
from iso_creator.types import BuildStatus
from web.deps import get_build_service

router = APIRouter()


def _build_to_dict(job: BuildJob) -> dict[str, Any]:
    """Convert a build job to a dictionary."""
    return job.model_dump(mode="json")


def _gallery_entry(job: BuildJob) -> dict[str, Any]:
    """Convert a completed build to a gallery entry."""
    return {
        "id": job.id,
        "name": job.config.name,
        "distro": job.config.distro,
        "mode": job.config.mode.value,
        "download_url": job.download_url,
        "image_size": job.image_size,
        "image_sha256": job.image_sha256,
        "created_at": job.created_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


@router.post("/builds", status_code=http_status.HTTP_201_CREATED)
async def create_build_endpoint(
    config: BuildConfig,
    service: BuildService = Depends(get_build_service),
) -> dict[str, Any]:
    """Queue a build.

    The build runs in the background; follow it over GET /builds/{id}
    or the /ws/{id} status stream.

    Returns:
        Job id and initial status.
    """
    job = await service.create_build(config)
    return {"id": job.id, "status": job.status.value}


@router.get("/builds")
async def list_builds_endpoint(
    status: BuildStatus | None = Query(None, description="Filter by status"),
    service: BuildService = Depends(get_build_service),
) -> list[dict[str, Any]]:
    """List builds in creation order."""
    jobs = await service.list_builds(status)
    return [_build_to_dict(job) for job in jobs]


@router.get("/builds/{job_id}")
async def get_build_endpoint(
    job_id: str,
    service: BuildService = Depends(get_build_service),
) -> dict[str, Any]:
    """Get a build by ID.

    Raises:
        HTTPException: 404 if the build is not found.
    """
    try:
        job = await service.get_build(job_id)
    except BuildNotFoundError as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail={"code": e.code, "message": str(e)},
        ) from e
    return _build_to_dict(job)


@router.get("/gallery")
async def gallery_endpoint(
    service: BuildService = Depends(get_build_service),
) -> list[dict[str, Any]]:
    """List completed builds with their download URLs."""
    jobs = await service.list_completed_builds()
    return [_gallery_entry(job) for job in jobs]
