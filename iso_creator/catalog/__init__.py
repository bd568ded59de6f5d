"""Distribution and overlay catalog."""

from iso_creator.catalog.distros import DistroTemplate, get_distro, list_distros
from iso_creator.catalog.overlays import resolve_overlay_packages, validate_overlays

__all__ = [
    "DistroTemplate",
    "get_distro",
    "list_distros",
    "resolve_overlay_packages",
    "validate_overlays",
]
