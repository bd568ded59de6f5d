"""Build pipeline execution.

Runs the stages of one build job in order and records every transition
in the job registry:

    queued(0) -> building(0, 20, 40, 60) -> packaging(80)
              -> uploading(90) -> completed(100)

Any fatal stage error moves the job to failed with the error message.
Each job works in its own temporary directory, removed afterwards
unless ``keep_build_dir`` is set.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from iso_creator.builds.bootstrap import get_bootstrap_strategy
from iso_creator.builds.customize import (
    apply_kernel_modules,
    apply_theme,
    run_custom_scripts,
)
from iso_creator.builds.executor import CommandExecutor
from iso_creator.builds.image import create_image
from iso_creator.builds.manifest import compute_file_sha256, generate_manifest
from iso_creator.builds.models import BuildJob
from iso_creator.builds.packages import PackageInstallReport, install_packages
from iso_creator.builds.registry import JobRegistry
from iso_creator.builds.upload import ObjectStorage, object_key
from iso_creator.catalog.distros import get_distro
from iso_creator.config import Settings, get_settings
from iso_creator.errors import (
    BuildNotFoundError,
    FilesystemError,
    InvalidTransitionError,
    IsoCreatorError,
    TransferError,
)
from iso_creator.hardware.classifier import detect_modules
from iso_creator.hardware.kernel_config import (
    generate_kernel_config,
    validate_kernel_config,
)
from iso_creator.types import BuildStatus, LogLevel, ModuleRecommendation

logger = logging.getLogger(__name__)


@dataclass
class _BuildContext:
    """Per-run working state shared between stages."""

    job: BuildJob
    build_dir: Path
    root: Path
    packages: PackageInstallReport | None = None
    modules: list[ModuleRecommendation] = field(default_factory=list)
    image_path: Path | None = None


class BuildPipeline:
    """Executes build jobs registered in a JobRegistry.

    Args:
        registry: Job registry holding the job records.
        executor: Runs external tools.
        storage: Destination for finished images.
        settings: Application settings.
    """

    def __init__(
        self,
        registry: JobRegistry,
        executor: CommandExecutor,
        storage: ObjectStorage,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.storage = storage
        self.settings = settings or get_settings()

    async def _log(self, job_id: str, level: LogLevel, message: str) -> None:
        await self.registry.mutate(job_id, None, message, level)

    async def _advance(
        self,
        job_id: str,
        status: BuildStatus,
        progress: int,
        message: str,
    ) -> BuildJob:
        def apply(job: BuildJob) -> None:
            job.status = status
            job.progress = progress

        logger.info("Job %s: %s %d%% %s", job_id, status.value, progress, message)
        return await self.registry.mutate(job_id, apply, message)

    async def _fail(self, job_id: str, message: str) -> None:
        try:
            await self.registry.mutate(
                job_id,
                lambda job: job.mark_failed(message),
                f"Build failed: {message}",
                LogLevel.ERROR,
            )
        except (BuildNotFoundError, InvalidTransitionError) as e:
            logger.warning("Could not mark job %s as failed: %s", job_id, e)
        logger.error("Build %s failed: %s", job_id, message)

    def _make_build_dir(self, job_id: str) -> Path:
        parent = self.settings.work_dir
        if parent is not None:
            parent.mkdir(parents=True, exist_ok=True)
        build_dir = Path(tempfile.mkdtemp(prefix=f"iso_{job_id[:8]}_", dir=parent))
        (build_dir / "root").mkdir()
        return build_dir

    async def _cleanup(self, build_dir: Path | None) -> None:
        if build_dir is None:
            return
        if self.settings.keep_build_dir:
            logger.info("Keeping build directory %s", build_dir)
            return
        await asyncio.to_thread(shutil.rmtree, build_dir, ignore_errors=True)
        logger.debug("Removed build directory %s", build_dir)

    async def run(self, job_id: str) -> BuildJob:
        """Run all stages for a registered job.

        Stage errors never propagate: they end the job in the failed state.

        Args:
            job_id: Job to run.

        Returns:
            Snapshot of the job after the run.

        Raises:
            BuildNotFoundError: If the job id is unknown.
        """
        job = await self.registry.get(job_id)
        if job is None:
            raise BuildNotFoundError(job_id)

        await self.registry.mutate(job_id, BuildJob.mark_running, "Starting build process")

        build_dir: Path | None = None
        try:
            try:
                build_dir = await asyncio.to_thread(self._make_build_dir, job_id)
            except OSError as e:
                raise FilesystemError(f"Failed to create build directory: {e}") from e

            ctx = _BuildContext(job=job, build_dir=build_dir, root=build_dir / "root")
            await self._prepare_base_system(ctx)
            await self._install_packages(ctx)
            await self._customize(ctx)
            await self._create_image(ctx)
            await self._upload(ctx)
        except IsoCreatorError as e:
            await self._fail(job_id, str(e))
        except asyncio.CancelledError:
            await self._fail(job_id, "Build cancelled")
            raise
        except Exception as e:
            logger.exception("Unexpected error in build %s", job_id)
            await self._fail(job_id, f"Unexpected error: {e}")
        finally:
            await self._cleanup(build_dir)

        final = await self.registry.get(job_id)
        if final is None:
            raise BuildNotFoundError(job_id)
        return final

    async def _prepare_base_system(self, ctx: _BuildContext) -> None:
        config = ctx.job.config
        distro = get_distro(config.distro)
        strategy = get_bootstrap_strategy(distro)
        await self._log(
            ctx.job.id,
            LogLevel.INFO,
            f"Preparing {distro.name} base system with {strategy.tool}",
        )
        await strategy.prepare_base_system(
            config, ctx.root, self.executor, timeout=self.settings.tool_timeout
        )
        await self._advance(ctx.job.id, BuildStatus.BUILDING, 20, "Base system prepared")

    async def _install_packages(self, ctx: _BuildContext) -> None:
        job_id = ctx.job.id

        async def log(level: LogLevel, message: str) -> None:
            await self._log(job_id, level, message)

        ctx.packages = await install_packages(
            ctx.job.config,
            get_distro(ctx.job.config.distro),
            ctx.root,
            self.executor,
            log,
            timeout=self.settings.tool_timeout,
        )
        report = ctx.packages
        message = f"Packages installed ({len(report.installed)} installed"
        if report.failed:
            message += f", {len(report.failed)} failed"
        await self._advance(job_id, BuildStatus.BUILDING, 40, message + ")")

    async def _customize(self, ctx: _BuildContext) -> None:
        job_id = ctx.job.id
        config = ctx.job.config

        async def log(level: LogLevel, message: str) -> None:
            await self._log(job_id, level, message)

        await apply_theme(config.theme, ctx.root, log)

        if config.ai_mode:
            ctx.modules = detect_modules(config.hardware_raw)
            modules = list(ctx.modules)

            def set_modules(job: BuildJob) -> None:
                job.modules = modules

            enabled = [m.module_name for m in modules if m.enabled]
            await self.registry.mutate(
                job_id,
                set_modules,
                f"Hardware optimization selected {len(enabled)} kernel module(s): "
                + (", ".join(enabled) or "none"),
            )
            await apply_kernel_modules(config, ctx.modules, ctx.root)
            problems = validate_kernel_config(
                generate_kernel_config(config.mode, modules), config.mode
            )
            if problems:
                await log(
                    LogLevel.WARNING,
                    "Kernel config validation failed: " + "; ".join(problems),
                )
            else:
                await log(LogLevel.INFO, "Kernel config validation passed")

        failures = await run_custom_scripts(
            config.custom_scripts,
            ctx.root,
            self.executor,
            log,
            timeout=self.settings.tool_timeout,
        )
        if failures:
            logger.warning("Job %s: %d custom script(s) failed", job_id, failures)
        await self._advance(job_id, BuildStatus.BUILDING, 60, "Customizations applied")

    async def _create_image(self, ctx: _BuildContext) -> None:
        manifest = generate_manifest(
            ctx.job.id,
            ctx.job.config,
            packages=ctx.packages.installed if ctx.packages else [],
            modules=ctx.modules,
        )
        ctx.image_path = await create_image(
            ctx.job.config,
            ctx.build_dir,
            ctx.root,
            self.executor,
            manifest=manifest,
            timeout=self.settings.tool_timeout,
        )
        await self._advance(ctx.job.id, BuildStatus.PACKAGING, 80, "ISO image created")

    async def _upload(self, ctx: _BuildContext) -> None:
        job_id = ctx.job.id
        image_path = ctx.image_path
        if image_path is None:
            raise FilesystemError("No image was produced")

        try:
            sha256 = await asyncio.to_thread(compute_file_sha256, image_path)
            size = image_path.stat().st_size
        except OSError as e:
            raise FilesystemError(f"Cannot read image {image_path}: {e}") from e

        def start_upload(job: BuildJob) -> None:
            job.status = BuildStatus.UPLOADING
            job.progress = 90
            job.image_sha256 = sha256
            job.image_size = size

        await self.registry.mutate(
            job_id, start_upload, f"Uploading {image_path.name} ({size} bytes)"
        )

        key = object_key(job_id, image_path)
        try:
            url = await asyncio.wait_for(
                self.storage.upload(key, image_path),
                timeout=self.settings.upload_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransferError(
                f"Upload timed out after {self.settings.upload_timeout} seconds"
            ) from e

        await self.registry.mutate(
            job_id,
            lambda job: job.mark_completed(url),
            "Build completed successfully",
        )
        logger.info("Build %s completed: %s", job_id, url)


__all__ = ["BuildPipeline"]
