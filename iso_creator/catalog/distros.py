"""Distribution templates.

A template pins everything the bootstrap stage needs for one target
distribution: its family, suite or release, mirror, and the packages a
desktop build adds on top of the base system.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from iso_creator.types import DistroCategory


class DistroTemplate(BaseModel):
    """Schema for a supported target distribution.

    Attributes:
        id: Stable distribution selector (e.g. 'debian-12').
        name: Display name.
        description: Short description.
        category: Distribution family; selects the bootstrap strategy.
        package_manager: Package manager name inside the target root.
        release: Suite codename (Debian family) or release version (Fedora family).
        mirror: Package mirror used by the bootstrap tool.
        release_package: Release package installed into a Fedora-family root.
        desktop_package: Desktop environment package for desktop builds.
        default_packages: Packages suggested for this distribution.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    description: str = ""
    category: DistroCategory
    package_manager: str | None = None
    release: str | None = None
    mirror: str | None = None
    release_package: str | None = None
    desktop_package: str | None = None
    default_packages: list[str] = Field(default_factory=list)

    @property
    def supported(self) -> bool:
        """Whether a bootstrap strategy exists for this distribution."""
        return self.category is not DistroCategory.CUSTOM


DISTROS: tuple[DistroTemplate, ...] = (
    DistroTemplate(
        id="ubuntu-22.04",
        name="Ubuntu 22.04 LTS",
        description="The world's most popular Linux distribution with long-term support",
        category=DistroCategory.UBUNTU,
        package_manager="apt",
        release="jammy",
        mirror="http://archive.ubuntu.com/ubuntu/",
        desktop_package="ubuntu-desktop-minimal",
        default_packages=["gnome-shell", "firefox", "libreoffice"],
    ),
    DistroTemplate(
        id="debian-12",
        name="Debian 12",
        description="The universal operating system known for stability and security",
        category=DistroCategory.DEBIAN,
        package_manager="apt",
        release="bookworm",
        mirror="http://deb.debian.org/debian/",
        desktop_package="gnome",
        default_packages=["firefox-esr", "libreoffice"],
    ),
    DistroTemplate(
        id="proxmox",
        name="Proxmox VE",
        description="Enterprise virtualization platform",
        category=DistroCategory.DEBIAN,
        package_manager="apt",
        release="bookworm",
        mirror="http://deb.debian.org/debian/",
        desktop_package="xfce4",
    ),
    DistroTemplate(
        id="arch-linux",
        name="Arch Linux",
        description="A lightweight and flexible Linux distribution that keeps it simple",
        category=DistroCategory.ARCH,
        package_manager="pacman",
        desktop_package="gnome",
        default_packages=["firefox", "libreoffice-fresh"],
    ),
    DistroTemplate(
        id="fedora-39",
        name="Fedora 39",
        description="Leading-edge platform for developers, artists, and sysadmins",
        category=DistroCategory.FEDORA,
        package_manager="dnf",
        release="39",
        release_package="fedora-release",
        desktop_package="@gnome-desktop",
        default_packages=["firefox", "libreoffice"],
    ),
    DistroTemplate(
        id="rocky",
        name="Rocky Linux",
        description="Enterprise RHEL-compatible",
        category=DistroCategory.FEDORA,
        package_manager="dnf",
        release="9",
        release_package="rocky-release",
        desktop_package="@workstation-product-environment",
    ),
    DistroTemplate(
        id="nixos",
        name="NixOS",
        description="Reproducible, declarative",
        category=DistroCategory.CUSTOM,
        package_manager="nix",
    ),
)

DISTRO_ALIASES = {
    "ubuntu": "ubuntu-22.04",
    "debian": "debian-12",
    "arch": "arch-linux",
    "fedora": "fedora-39",
}

_BY_ID = {d.id: d for d in DISTROS}


def list_distros() -> list[DistroTemplate]:
    """Return all built-in distribution templates."""
    return list(DISTROS)


def get_distro(distro_id: str) -> DistroTemplate:
    """Resolve a distribution selector to its template.

    Aliases such as 'debian' resolve to their default release. Unknown
    selectors resolve to a custom template, which has no bootstrap strategy.

    Args:
        distro_id: Distribution selector.

    Returns:
        DistroTemplate for the selector.
    """
    key = distro_id.strip().lower()
    key = DISTRO_ALIASES.get(key, key)
    template = _BY_ID.get(key)
    if template is not None:
        return template
    return DistroTemplate(id=distro_id, name=distro_id, category=DistroCategory.CUSTOM)


__all__ = ["DISTROS", "DISTRO_ALIASES", "DistroTemplate", "get_distro", "list_distros"]
