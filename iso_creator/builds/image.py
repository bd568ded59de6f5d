"""Bootable image creation.

This module handles:
- The live-boot directory layout (GRUB config, kernel and initrd)
- Compressing the root into a squashfs image
- Authoring the hybrid BIOS/EFI ISO with xorriso

See the GRUB and xorriso manuals for the boot record options used here.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any

from iso_creator.builds.executor import CommandExecutor, check_result
from iso_creator.builds.manifest import write_manifest
from iso_creator.builds.models import BuildConfig
from iso_creator.errors import FilesystemError

logger = logging.getLogger(__name__)

APP_ID = "Linux ISO Creator"
VOLUME_ID_MAX = 32

BIOS_BOOT_IMAGE = "boot/grub/i386-pc/eltorito.img"
EFI_BOOT_IMAGE = "boot/grub/efi.img"
SQUASHFS_PATH = "live/filesystem.squashfs"
MANIFEST_PATH = ".disk/manifest.json"

GRUB_CFG_TEMPLATE = """set timeout=10
set default=0

menuentry "{title}" {{
    linux /boot/vmlinuz boot=live quiet splash
    initrd /boot/initrd.img
}}
"""


def render_grub_cfg(config: BuildConfig) -> str:
    """Render the GRUB menu for the live system."""
    title = f"{config.name} ({config.distro} {config.mode.value})"
    return GRUB_CFG_TEMPLATE.format(title=title)


def volume_id(config: BuildConfig) -> str:
    """Return the ISO volume id (at most 32 characters)."""
    return config.name[:VOLUME_ID_MAX]


def _latest(boot_dir: Path, pattern: str) -> Path | None:
    candidates = sorted(boot_dir.glob(pattern))
    return candidates[-1] if candidates else None


def _build_live_layout(
    config: BuildConfig,
    root: Path,
    iso_dir: Path,
    manifest: dict[str, Any] | None,
) -> None:
    grub_dir = iso_dir / "boot" / "grub"
    grub_dir.mkdir(parents=True, exist_ok=True)
    (iso_dir / "live").mkdir(parents=True, exist_ok=True)
    (grub_dir / "grub.cfg").write_text(render_grub_cfg(config), encoding="utf-8")

    boot_src = root / "boot"
    for pattern, target in (("vmlinuz-*", "vmlinuz"), ("initrd.img-*", "initrd.img")):
        dest = iso_dir / "boot" / target
        found = _latest(boot_src, pattern) if boot_src.is_dir() else None
        if found is not None:
            shutil.copy2(found, dest)
        else:
            # Placeholder until a kernel is installed into the root
            dest.touch()

    if manifest is not None:
        write_manifest(manifest, iso_dir / MANIFEST_PATH)


async def create_live_layout(
    config: BuildConfig,
    root: Path,
    iso_dir: Path,
    manifest: dict[str, Any] | None = None,
) -> Path:
    """Create the live-boot directory layout.

    Args:
        config: Build configuration.
        root: Prepared root directory.
        iso_dir: Directory that becomes the ISO filesystem.
        manifest: Optional build manifest to embed.

    Returns:
        The ISO directory.

    Raises:
        FilesystemError: If the layout cannot be written.
    """
    try:
        await asyncio.to_thread(_build_live_layout, config, root, iso_dir, manifest)
    except OSError as e:
        raise FilesystemError(f"Failed to create live layout in {iso_dir}: {e}") from e
    logger.info("Created live system layout in %s", iso_dir)
    return iso_dir


def compose_squashfs_command(root: Path, output: Path) -> list[str]:
    """Compose the mksquashfs command for the root filesystem."""
    return ["mksquashfs", str(root), str(output), "-noappend", "-e", "boot"]


def compose_xorriso_command(config: BuildConfig, iso_dir: Path, output: Path) -> list[str]:
    """Compose the xorriso command for a hybrid BIOS/EFI image."""
    return [
        "xorriso",
        "-as",
        "mkisofs",
        "-iso-level",
        "3",
        "-full-iso9660-filenames",
        "-volid",
        volume_id(config),
        "-appid",
        APP_ID,
        "-publisher",
        APP_ID,
        "-preparer",
        APP_ID,
        "-eltorito-boot",
        BIOS_BOOT_IMAGE,
        "-no-emul-boot",
        "-boot-load-size",
        "4",
        "-boot-info-table",
        "-eltorito-alt-boot",
        "-e",
        EFI_BOOT_IMAGE,
        "-no-emul-boot",
        "-isohybrid-gpt-basdat",
        "-output",
        str(output),
        str(iso_dir),
    ]


async def create_image(
    config: BuildConfig,
    build_dir: Path,
    root: Path,
    executor: CommandExecutor,
    manifest: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> Path:
    """Create the bootable image from a prepared root.

    Args:
        config: Build configuration.
        build_dir: Per-job working directory.
        root: Prepared root directory.
        executor: Command executor.
        manifest: Optional build manifest to embed.
        timeout: Per-tool timeout in seconds.

    Returns:
        Path to the produced image.

    Raises:
        FilesystemError: If the layout cannot be written.
        ToolInvocationError: If mksquashfs or xorriso fails.
    """
    iso_dir = build_dir / "iso"
    await create_live_layout(config, root, iso_dir, manifest)

    squashfs = iso_dir / SQUASHFS_PATH
    cmd = compose_squashfs_command(root, squashfs)
    check_result(await executor.run(cmd[0], cmd[1:], timeout=timeout), "mksquashfs")

    image_path = build_dir / f"{config.name}.iso"
    cmd = compose_xorriso_command(config, iso_dir, image_path)
    check_result(await executor.run(cmd[0], cmd[1:], timeout=timeout), "xorriso")

    logger.info("Created image %s", image_path)
    return image_path


__all__ = [
    "APP_ID",
    "BIOS_BOOT_IMAGE",
    "EFI_BOOT_IMAGE",
    "compose_squashfs_command",
    "compose_xorriso_command",
    "create_image",
    "create_live_layout",
    "render_grub_cfg",
    "volume_id",
]
