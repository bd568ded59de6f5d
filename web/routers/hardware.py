"""Hardware detection endpoints."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from iso_creator.hardware.classifier import classify_modules, parse_devices
from iso_creator.hardware.kernel_config import generate_kernel_config
from iso_creator.types import BuildMode

router = APIRouter()


class DetectRequest(BaseModel):
    """Request body for hardware detection."""

    hardware_raw: str
    mode: BuildMode = BuildMode.DESKTOP


@router.post("/detect")
def detect_endpoint(request: DetectRequest) -> dict[str, Any]:
    """Parse hardware enumeration text and recommend kernel modules.

    Returns:
        Parsed devices, module recommendations and a kernel config fragment.
    """
    devices = parse_devices(request.hardware_raw)
    modules = classify_modules(devices)
    return {
        "devices": [asdict(d) for d in devices],
        "modules": [asdict(m) for m in modules],
        "kernel_config": generate_kernel_config(request.mode, modules),
    }
