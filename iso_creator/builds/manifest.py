"""Build manifest and checksum helpers.

The manifest records what went into an image (distribution, mode,
packages, kernel modules) and ships inside the image under ``.disk/``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from iso_creator.builds.models import BuildConfig
from iso_creator.types import ModuleRecommendation

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0"

# Chunk size for hashing (bytes)
HASH_CHUNK_SIZE = 64 * 1024


def generate_manifest(
    job_id: str,
    config: BuildConfig,
    packages: Sequence[str] | None = None,
    modules: Sequence[ModuleRecommendation] | None = None,
    extra_metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Generate a build manifest.

    Args:
        job_id: Build job id.
        config: Build configuration.
        packages: Packages requested for installation.
        modules: Kernel module recommendations.
        extra_metadata: Optional additional metadata.

    Returns:
        Manifest dictionary suitable for JSON serialization.
    """
    manifest: dict[str, Any] = {
        "version": MANIFEST_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "job_id": job_id,
        "name": config.name,
        "distro": config.distro,
        "mode": config.mode.value,
        "overlays": list(config.overlays),
        "custom_software": list(config.custom_software),
        "packages": list(packages or []),
        "modules": [asdict(m) for m in modules or []],
    }
    if extra_metadata:
        manifest["metadata"] = extra_metadata
    return manifest


def write_manifest(manifest: dict[str, Any], output_path: Path) -> Path:
    """Write manifest to a JSON file.

    Args:
        manifest: Manifest dictionary.
        output_path: Output file path.

    Returns:
        Path to written manifest file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with output_path.open("w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, sort_keys=True)

    logger.info("Wrote manifest to %s", output_path)
    return output_path


def compute_file_sha256(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute SHA256 checksum of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks to read.

    Returns:
        SHA256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


__all__ = [
    "MANIFEST_VERSION",
    "compute_file_sha256",
    "generate_manifest",
    "write_manifest",
]
