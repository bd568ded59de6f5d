"""Overlay catalog: overlay ids mapped to real package names.

Package names differ per package manager. An empty list means the
overlay is installed by an external script or repository rather than a
plain package install, so the package stage skips it.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from iso_creator.catalog.distros import get_distro

OVERLAY_PACKAGES: dict[str, dict[str, list[str]]] = {
    "apt": {
        "docker": ["docker.io", "containerd"],
        "k3s": [],
        "podman": ["podman", "buildah", "skopeo"],
        "tailscale": [],
        "caddy": ["caddy"],
        "nginx": ["nginx"],
        "postgres": ["postgresql-16", "postgresql-client-16"],
        "redis": ["redis-server"],
        "mysql": ["mariadb-server", "mariadb-client"],
        "prometheus": ["prometheus"],
        "grafana": [],
        "netdata": [],
        "neovim": ["neovim"],
        "vscode": [],
        "rustup": [],
        "nodejs": ["nodejs", "npm"],
        "golang": ["golang-go"],
        "obs": ["obs-studio"],
        "blender": ["blender"],
        "steam": [],
        "lutris": ["lutris"],
        "qemu": ["qemu-system-x86", "qemu-utils", "ovmf"],
        "libvirt": ["libvirt-daemon-system", "virtinst", "virt-manager"],
        "lxc": ["lxc", "lxd-installer"],
        "tacticalrmm": [],
        "meshcentral": ["nodejs", "npm"],
        "ansible": ["ansible"],
        "salt": ["salt-minion"],
        "puppet": ["puppet-agent"],
        "zabbix": ["zabbix-agent2"],
    },
    "dnf": {
        "docker": [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-compose-plugin",
        ],
        "k3s": [],
        "podman": ["podman", "buildah", "skopeo"],
        "tailscale": [],
        "caddy": ["caddy"],
        "nginx": ["nginx"],
        "postgres": ["postgresql-server", "postgresql"],
        "redis": ["redis"],
        "mysql": ["mariadb-server", "mariadb"],
        "prometheus": [],
        "grafana": [],
        "netdata": [],
        "neovim": ["neovim"],
        "vscode": [],
        "rustup": [],
        "nodejs": ["nodejs", "npm"],
        "golang": ["golang"],
        "obs": [],
        "blender": ["blender"],
        "steam": [],
        "lutris": ["lutris"],
        "qemu": ["qemu-kvm", "qemu-img", "edk2-ovmf"],
        "libvirt": ["libvirt", "virt-install", "virt-manager"],
        "lxc": ["lxc", "lxc-templates"],
        "tacticalrmm": [],
        "meshcentral": ["nodejs", "npm"],
        "ansible": ["ansible-core"],
        "salt": ["salt-minion"],
        "puppet": ["puppet-agent"],
        "zabbix": ["zabbix-agent2"],
    },
    "pacman": {
        "docker": ["docker", "containerd"],
        "k3s": [],
        "podman": ["podman", "buildah", "skopeo"],
        "tailscale": ["tailscale"],
        "caddy": ["caddy"],
        "nginx": ["nginx"],
        "postgres": ["postgresql"],
        "redis": ["redis"],
        "mysql": ["mariadb", "mariadb-clients"],
        "prometheus": ["prometheus"],
        "grafana": ["grafana"],
        "netdata": ["netdata"],
        "neovim": ["neovim"],
        "vscode": ["code"],
        "rustup": ["rustup"],
        "nodejs": ["nodejs", "npm"],
        "golang": ["go"],
        "obs": ["obs-studio"],
        "blender": ["blender"],
        "steam": [],
        "lutris": ["lutris"],
        "qemu": ["qemu-full", "edk2-ovmf"],
        "libvirt": ["libvirt", "virt-install", "virt-manager"],
        "lxc": ["lxc", "lxd"],
        "tacticalrmm": [],
        "meshcentral": ["nodejs", "npm"],
        "ansible": ["ansible"],
        "salt": ["salt"],
        "puppet": ["puppet"],
        "zabbix": ["zabbix-agent2"],
    },
}

# yum-based roots share the dnf package names
OVERLAY_PACKAGES["yum"] = OVERLAY_PACKAGES["dnf"]

OverlayStatus = Literal["native", "script", "unknown", "custom"]


class OverlayReport(BaseModel):
    """Resolution report for one overlay or custom package."""

    model_config = ConfigDict(extra="forbid")

    id: str
    status: OverlayStatus
    packages: list[str] = Field(default_factory=list)
    note: str


class OverlayValidation(BaseModel):
    """Resolution report for a whole build selection."""

    model_config = ConfigDict(extra="forbid")

    distro: str
    package_manager: str | None
    supported: bool
    overlays: list[OverlayReport]
    custom_software: list[OverlayReport]


def overlay_packages(overlay: str, manager: str) -> list[str] | None:
    """Look up the packages for one overlay.

    Args:
        overlay: Overlay id.
        manager: Package manager name (apt, dnf, yum, pacman).

    Returns:
        Package names, an empty list for script-installed overlays, or
        None if the overlay is not in the catalog.
    """
    mapping = OVERLAY_PACKAGES.get(manager, {})
    packages = mapping.get(overlay)
    return list(packages) if packages is not None else None


def resolve_overlay_packages(overlays: Iterable[str], manager: str) -> list[str]:
    """Resolve overlays to an ordered, duplicate-free package list.

    Unknown overlays are kept under their literal name; script-installed
    overlays contribute nothing.

    Args:
        overlays: Overlay ids in selection order.
        manager: Package manager name.

    Returns:
        Package names in first-seen order.
    """
    packages: list[str] = []
    for overlay in overlays:
        resolved = overlay_packages(overlay, manager)
        if resolved is None:
            resolved = [overlay]
        for pkg in resolved:
            if pkg not in packages:
                packages.append(pkg)
    return packages


def validate_overlays(
    distro: str,
    overlays: Iterable[str],
    custom_software: Iterable[str] = (),
) -> OverlayValidation:
    """Report how each selected overlay will be installed for a distribution.

    Args:
        distro: Distribution selector.
        overlays: Overlay ids.
        custom_software: Free-text package names.

    Returns:
        OverlayValidation report.
    """
    template = get_distro(distro)
    manager = template.package_manager or "apt"

    reports: list[OverlayReport] = []
    for overlay in overlays:
        packages = overlay_packages(overlay, manager)
        if packages is None:
            reports.append(
                OverlayReport(
                    id=overlay,
                    status="unknown",
                    note="Package mapping not found, will attempt install",
                )
            )
        elif not packages:
            reports.append(
                OverlayReport(
                    id=overlay,
                    status="script",
                    note="Installed via external script/repo",
                )
            )
        else:
            reports.append(
                OverlayReport(
                    id=overlay,
                    status="native",
                    packages=packages,
                    note=f"{len(packages)} package(s) via {manager}",
                )
            )

    custom = [
        OverlayReport(
            id=name,
            status="custom",
            packages=[name],
            note=f"Will attempt: {manager} install {name}",
        )
        for name in custom_software
    ]

    return OverlayValidation(
        distro=distro,
        package_manager=template.package_manager,
        supported=template.supported,
        overlays=reports,
        custom_software=custom,
    )


__all__ = [
    "OVERLAY_PACKAGES",
    "OverlayReport",
    "OverlayValidation",
    "overlay_packages",
    "resolve_overlay_packages",
    "validate_overlays",
]
