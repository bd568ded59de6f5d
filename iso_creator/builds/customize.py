"""Root filesystem customization.

This module handles:
- Theme directories and recorded theme settings
- Kernel module selection files for hardware-optimized builds
- Running custom scripts inside the root; single failures are soft
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path

from iso_creator.builds.executor import CommandExecutor
from iso_creator.builds.models import BuildConfig, ThemeConfig
from iso_creator.builds.packages import StageLog
from iso_creator.errors import FilesystemError, ToolInvocationError
from iso_creator.hardware.kernel_config import (
    generate_kernel_config,
    modprobe_blacklist_conf,
    modules_load_conf,
)
from iso_creator.types import LogLevel, ModuleRecommendation

logger = logging.getLogger(__name__)

THEMES_DIR = "usr/share/themes"
ICONS_DIR = "usr/share/icons"
SETTINGS_DIR = "etc/iso-creator"
MODULES_LOAD_FILE = "etc/modules-load.d/iso-creator.conf"
BLACKLIST_FILE = "etc/modprobe.d/iso-creator-blacklist.conf"
SCRIPT_DIR = "tmp"


def _write_file(path: Path, content: str, mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mode is not None:
        path.chmod(mode)


async def write_root_file(
    root: Path,
    relative_path: str,
    content: str,
    mode: int | None = None,
) -> Path:
    """Write a file inside the root without blocking the event loop.

    Args:
        root: Root directory.
        relative_path: Path relative to the root.
        content: Text content.
        mode: Optional file mode.

    Returns:
        Path of the written file.

    Raises:
        FilesystemError: If the write fails.
    """
    path = root / relative_path
    try:
        await asyncio.to_thread(_write_file, path, content, mode)
    except OSError as e:
        raise FilesystemError(f"Failed to write {path}: {e}") from e
    return path


async def apply_theme(theme: ThemeConfig, root: Path, log: StageLog) -> Path:
    """Create theme directories and record the theme selection.

    Theme assets are not fetched; the selection is recorded in
    ``etc/iso-creator/theme.json`` for first-boot configuration.

    Args:
        theme: Theme selection.
        root: Root directory.
        log: Callback recording job log entries.

    Returns:
        Path of the recorded theme file.

    Raises:
        FilesystemError: If directories cannot be created.
    """
    for rel in (THEMES_DIR, ICONS_DIR):
        try:
            await asyncio.to_thread((root / rel).mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create {root / rel}: {e}") from e

    if theme.gtk_theme:
        await log(LogLevel.INFO, f"Setting GTK theme to: {theme.gtk_theme}")
    if theme.icon_theme:
        await log(LogLevel.INFO, f"Setting icon theme to: {theme.icon_theme}")
    if theme.wallpaper:
        await log(LogLevel.INFO, f"Setting wallpaper to: {theme.wallpaper}")

    return await write_root_file(
        root,
        f"{SETTINGS_DIR}/theme.json",
        json.dumps(theme.model_dump(mode="json"), indent=2, sort_keys=True) + "\n",
    )


async def apply_kernel_modules(
    config: BuildConfig,
    modules: Sequence[ModuleRecommendation],
    root: Path,
) -> list[Path]:
    """Write module load, blacklist and kernel config files into the root.

    Args:
        config: Build configuration.
        modules: Module recommendations for the job's hardware.
        root: Root directory.

    Returns:
        Paths of the written files.

    Raises:
        FilesystemError: If a write fails.
    """
    written = [
        await write_root_file(root, MODULES_LOAD_FILE, modules_load_conf(modules)),
        await write_root_file(
            root,
            f"{SETTINGS_DIR}/kernel.config",
            generate_kernel_config(config.mode, modules),
        ),
    ]
    blacklist = modprobe_blacklist_conf(modules)
    if blacklist:
        written.append(await write_root_file(root, BLACKLIST_FILE, blacklist))
    return written


async def run_custom_script(
    root: Path,
    script: str,
    index: int,
    executor: CommandExecutor,
    log: StageLog,
    timeout: float | None = None,
) -> bool:
    """Run one custom script inside the root.

    The script is written into the root's ``tmp`` directory, made
    executable, run with chroot, and removed afterwards.

    Returns:
        True if the script succeeded.
    """
    name = f"custom-script-{index}.sh"
    script_path = root / SCRIPT_DIR / name

    try:
        await write_root_file(root, f"{SCRIPT_DIR}/{name}", script, mode=0o755)
    except FilesystemError as e:
        await log(LogLevel.WARNING, f"Custom script {index} not written: {e}")
        return False

    try:
        result = await executor.run(
            "chroot", [str(root), f"/{SCRIPT_DIR}/{name}"], timeout=timeout
        )
    except ToolInvocationError as e:
        await log(LogLevel.WARNING, f"Custom script {index} failed: {e}")
        return False
    finally:
        try:
            await asyncio.to_thread(script_path.unlink, missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", script_path, e)

    if not result.success:
        await log(
            LogLevel.WARNING, f"Custom script {index} failed: {result.error_text()}"
        )
        return False
    return True


async def run_custom_scripts(
    scripts: Sequence[str],
    root: Path,
    executor: CommandExecutor,
    log: StageLog,
    timeout: float | None = None,
) -> int:
    """Run every custom script in order.

    Returns:
        Number of scripts that failed.
    """
    failures = 0
    for index, script in enumerate(scripts, start=1):
        ok = await run_custom_script(root, script, index, executor, log, timeout)
        if not ok:
            failures += 1
    return failures


__all__ = [
    "apply_kernel_modules",
    "apply_theme",
    "run_custom_script",
    "run_custom_scripts",
    "write_root_file",
]
