"""Package installation inside a prepared root.

This module handles:
- Detecting the package manager present in the root
- Composing the package list (desktop environment, overlays, custom)
- Installing each package with chroot; single failures are soft
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from iso_creator.builds.executor import CommandExecutor
from iso_creator.builds.models import BuildConfig
from iso_creator.catalog.distros import DistroTemplate
from iso_creator.catalog.overlays import overlay_packages
from iso_creator.errors import PackageManagerNotFoundError, ToolInvocationError
from iso_creator.types import BuildMode, LogLevel

logger = logging.getLogger(__name__)

StageLog = Callable[[LogLevel, str], Awaitable[None]]

# Probe order: (package manager, executable name)
PACKAGE_MANAGERS: tuple[tuple[str, str], ...] = (
    ("apt", "apt-get"),
    ("pacman", "pacman"),
    ("dnf", "dnf"),
    ("yum", "yum"),
)

BIN_DIRS = ("usr/bin", "bin")

INSTALL_COMMANDS: dict[str, list[str]] = {
    "apt": ["apt-get", "install", "-y"],
    "pacman": ["pacman", "-S", "--noconfirm"],
    "dnf": ["dnf", "install", "-y"],
    "yum": ["yum", "install", "-y"],
}


@dataclass
class PackageInstallReport:
    """Outcome of the package stage."""

    package_manager: str
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def detect_package_manager(root: Path) -> str:
    """Detect which package manager exists in a root filesystem.

    Args:
        root: Prepared root directory.

    Returns:
        Package manager name (apt, pacman, dnf or yum).

    Raises:
        PackageManagerNotFoundError: If none is present.
    """
    for manager, executable in PACKAGE_MANAGERS:
        for bin_dir in BIN_DIRS:
            if (root / bin_dir / executable).exists():
                return manager
    raise PackageManagerNotFoundError(str(root))


def compose_install_command(root: Path, manager: str, package: str) -> list[str]:
    """Compose a chroot install command for one package.

    Args:
        root: Root directory to chroot into.
        manager: Package manager name.
        package: Package name.

    Returns:
        Command as list of strings, program first.
    """
    return ["chroot", str(root), *INSTALL_COMMANDS[manager], package]


def plan_packages(
    config: BuildConfig,
    distro: DistroTemplate,
    manager: str,
) -> tuple[list[str], list[str]]:
    """Compose the ordered package list for a build.

    Args:
        config: Build configuration.
        distro: Resolved distribution template.
        manager: Detected package manager.

    Returns:
        Tuple of (packages to install, overlays installed by script).
    """
    packages: list[str] = []
    script_overlays: list[str] = []

    def add(pkg: str) -> None:
        if pkg not in packages:
            packages.append(pkg)

    if config.mode is BuildMode.DESKTOP:
        desktop = config.desktop_environment or distro.desktop_package
        if desktop:
            add(desktop)

    for overlay in config.overlays:
        resolved = overlay_packages(overlay, manager)
        if resolved is None:
            add(overlay)
        elif not resolved:
            script_overlays.append(overlay)
        else:
            for pkg in resolved:
                add(pkg)

    for pkg in config.custom_software:
        add(pkg)

    return packages, script_overlays


async def install_packages(
    config: BuildConfig,
    distro: DistroTemplate,
    root: Path,
    executor: CommandExecutor,
    log: StageLog,
    timeout: float | None = None,
) -> PackageInstallReport:
    """Install the desktop environment, overlays and custom packages.

    Args:
        config: Build configuration.
        distro: Resolved distribution template.
        root: Prepared root directory.
        executor: Command executor.
        log: Callback recording job log entries.
        timeout: Per-package timeout in seconds.

    Returns:
        PackageInstallReport.

    Raises:
        PackageManagerNotFoundError: If the root has no known package manager.
    """
    manager = detect_package_manager(root)
    packages, script_overlays = plan_packages(config, distro, manager)
    report = PackageInstallReport(package_manager=manager, skipped=script_overlays)

    await log(
        LogLevel.INFO,
        f"Detected package manager {manager}; installing {len(packages)} package(s)",
    )
    for overlay in script_overlays:
        await log(
            LogLevel.INFO,
            f"Overlay {overlay} is installed via external script, skipping",
        )

    for package in packages:
        cmd = compose_install_command(root, manager, package)
        try:
            result = await executor.run(cmd[0], cmd[1:], timeout=timeout)
        except ToolInvocationError as e:
            report.failed.append(package)
            await log(LogLevel.WARNING, f"Failed to install package {package}: {e}")
            continue

        if result.success:
            report.installed.append(package)
            logger.debug("Installed %s", package)
        else:
            report.failed.append(package)
            await log(
                LogLevel.WARNING,
                f"Failed to install package {package}: {result.error_text()}",
            )

    return report


__all__ = [
    "INSTALL_COMMANDS",
    "PACKAGE_MANAGERS",
    "PackageInstallReport",
    "StageLog",
    "compose_install_command",
    "detect_package_manager",
    "install_packages",
    "plan_packages",
]
