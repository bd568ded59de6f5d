"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter

from iso_creator.config import get_settings

router = APIRouter()


@router.get("")
def get_config() -> dict[str, Any]:
    """Get effective configuration.

    The storage token is never returned.

    Returns:
        Current configuration as JSON.
    """
    settings = get_settings()
    return {
        "work_dir": str(settings.work_dir) if settings.work_dir else None,
        "artifacts_dir": str(settings.artifacts_dir),
        "keep_build_dir": settings.keep_build_dir,
        "storage_url": settings.storage_url,
        "storage_public_url": settings.storage_public_url,
        "log_level": settings.log_level,
        "max_concurrent_builds": settings.max_concurrent_builds,
        "status_poll_interval": settings.status_poll_interval,
        "tool_timeout": settings.tool_timeout,
        "upload_timeout": settings.upload_timeout,
    }
