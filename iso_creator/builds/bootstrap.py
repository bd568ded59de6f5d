"""Base-system bootstrap strategies.

Each distribution family has one strategy that materialises a minimal
root filesystem for the target. The family is a closed enum; the
custom family is rejected rather than silently degraded.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from iso_creator.builds.executor import CommandExecutor, check_result
from iso_creator.builds.models import BuildConfig
from iso_creator.catalog.distros import DistroTemplate, get_distro
from iso_creator.errors import UnsupportedDistroError
from iso_creator.types import DistroCategory

logger = logging.getLogger(__name__)

DEFAULT_ARCH = "amd64"


class BootstrapStrategy(Protocol):
    """Prepares a base system for one distribution family."""

    tool: str

    def compose_command(self, distro: DistroTemplate, root: Path) -> list[str]:
        """Return the bootstrap command line (program first)."""
        ...

    async def prepare_base_system(
        self,
        config: BuildConfig,
        root: Path,
        executor: CommandExecutor,
        timeout: float | None = None,
    ) -> None:
        """Materialise the base system into ``root``."""
        ...


class _CommandBootstrap:
    """Shared run-and-check logic for command-driven strategies."""

    tool = ""

    def compose_command(self, distro: DistroTemplate, root: Path) -> list[str]:
        raise NotImplementedError

    async def prepare_base_system(
        self,
        config: BuildConfig,
        root: Path,
        executor: CommandExecutor,
        timeout: float | None = None,
    ) -> None:
        distro = get_distro(config.distro)
        cmd = self.compose_command(distro, root)
        logger.info("Preparing %s base system in %s", distro.name, root)
        result = await executor.run(cmd[0], cmd[1:], timeout=timeout)
        check_result(result, self.tool)


class DebootstrapStrategy(_CommandBootstrap):
    """Debian/Ubuntu family: debootstrap a minbase system."""

    tool = "debootstrap"

    def compose_command(self, distro: DistroTemplate, root: Path) -> list[str]:
        suite = distro.release or "stable"
        mirror = distro.mirror or "http://deb.debian.org/debian/"
        return [
            "debootstrap",
            f"--arch={DEFAULT_ARCH}",
            "--variant=minbase",
            suite,
            str(root),
            mirror,
        ]


class PacstrapStrategy(_CommandBootstrap):
    """Arch family: pacstrap the base group."""

    tool = "pacstrap"

    def compose_command(self, distro: DistroTemplate, root: Path) -> list[str]:
        return ["pacstrap", "-K", str(root), "base"]


class DnfInstallrootStrategy(_CommandBootstrap):
    """Fedora family: dnf install the release package into an install root."""

    tool = "dnf"

    def compose_command(self, distro: DistroTemplate, root: Path) -> list[str]:
        cmd = ["dnf", "install", "-y"]
        if distro.release:
            cmd.append(f"--releasever={distro.release}")
        cmd.extend(
            [
                "--installroot",
                str(root),
                distro.release_package or "fedora-release",
                "coreutils",
            ]
        )
        return cmd


_STRATEGIES: dict[DistroCategory, type[_CommandBootstrap]] = {
    DistroCategory.DEBIAN: DebootstrapStrategy,
    DistroCategory.UBUNTU: DebootstrapStrategy,
    DistroCategory.ARCH: PacstrapStrategy,
    DistroCategory.FEDORA: DnfInstallrootStrategy,
}


def get_bootstrap_strategy(distro: DistroTemplate) -> BootstrapStrategy:
    """Select the bootstrap strategy for a distribution.

    Args:
        distro: Resolved distribution template.

    Returns:
        Strategy instance for the distribution's family.

    Raises:
        UnsupportedDistroError: For the custom family.
    """
    strategy_cls = _STRATEGIES.get(distro.category)
    if strategy_cls is None:
        raise UnsupportedDistroError(distro.id)
    return strategy_cls()


__all__ = [
    "BootstrapStrategy",
    "DebootstrapStrategy",
    "DnfInstallrootStrategy",
    "PacstrapStrategy",
    "get_bootstrap_strategy",
]
