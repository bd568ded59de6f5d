"""Build service module.

This module provides the high-level build API used by every frontend:
- create_build(): Register a job and start its pipeline in the background
- get_build() / list_builds() / list_completed_builds(): Job snapshots
- open_status_stream(): Status broadcaster for one job

At most ``max_concurrent_builds`` pipelines run at once; further jobs
stay queued until a slot frees.
"""

from __future__ import annotations

import asyncio
import logging

from iso_creator.builds.executor import CommandExecutor, SubprocessExecutor
from iso_creator.builds.models import BuildConfig, BuildJob
from iso_creator.builds.pipeline import BuildPipeline
from iso_creator.builds.registry import JobRegistry
from iso_creator.builds.upload import ObjectStorage, get_storage
from iso_creator.config import Settings, get_settings
from iso_creator.errors import BuildNotFoundError, InvalidTransitionError
from iso_creator.streaming.broadcaster import StatusBroadcaster
from iso_creator.types import BuildStatus, LogLevel

logger = logging.getLogger(__name__)


class BuildService:
    """Owns the job registry and the running pipelines.

    Args:
        settings: Application settings.
        registry: Job registry (a new one if not given).
        executor: Command executor (subprocesses if not given).
        storage: Image storage (selected from settings if not given).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registry: JobRegistry | None = None,
        executor: CommandExecutor | None = None,
        storage: ObjectStorage | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else JobRegistry()
        self.executor = executor or SubprocessExecutor(self.settings.tool_timeout)
        self.storage = storage or get_storage(self.settings)
        self.pipeline = BuildPipeline(
            self.registry, self.executor, self.storage, self.settings
        )
        self._slots = asyncio.Semaphore(self.settings.max_concurrent_builds)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def active_tasks(self) -> int:
        """Number of pipelines queued or running."""
        return len(self._tasks)

    async def create_build(self, config: BuildConfig) -> BuildJob:
        """Register a job and start its pipeline.

        Returns as soon as the job is registered; the pipeline runs as a
        background task.

        Args:
            config: Build configuration.

        Returns:
            Snapshot of the queued job.
        """
        job = BuildJob(config=config)
        await self.registry.create(job)
        job = await self.registry.mutate(
            job.id, None, f"Build job {job.id} created and queued"
        )
        logger.info("Queued build %s (%s, %s)", job.id, config.distro, config.mode.value)

        task = asyncio.create_task(self._run(job.id), name=f"build-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def _run(self, job_id: str) -> None:
        try:
            await self._slots.acquire()
        except asyncio.CancelledError:
            await self._cancel_queued(job_id)
            raise
        try:
            await self.pipeline.run(job_id)
        except BuildNotFoundError:
            logger.warning("Build %s disappeared before it ran", job_id)
        finally:
            self._slots.release()

    async def _cancel_queued(self, job_id: str) -> None:
        message = "Build cancelled"
        try:
            await self.registry.mutate(
                job_id,
                lambda job: job.mark_failed(message),
                f"Build failed: {message}",
                LogLevel.ERROR,
            )
        except (BuildNotFoundError, InvalidTransitionError) as e:
            logger.warning("Could not mark job %s as failed: %s", job_id, e)
            return
        logger.info("Build %s cancelled while queued", job_id)

    async def get_build(self, job_id: str) -> BuildJob:
        """Get a job snapshot by id.

        Raises:
            BuildNotFoundError: If the job id is unknown.
        """
        job = await self.registry.get(job_id)
        if job is None:
            raise BuildNotFoundError(job_id)
        return job

    async def list_builds(self, status: BuildStatus | None = None) -> list[BuildJob]:
        """List jobs in creation order, optionally filtered by status."""
        if status is None:
            return await self.registry.list()
        return await self.registry.list(lambda job: job.status == status)

    async def list_completed_builds(self) -> list[BuildJob]:
        """List completed jobs (the gallery)."""
        return await self.list_builds(BuildStatus.COMPLETED)

    async def open_status_stream(
        self,
        job_id: str,
        interval: float | None = None,
    ) -> StatusBroadcaster:
        """Create a status broadcaster for a job.

        Args:
            job_id: Job to follow.
            interval: Poll interval; defaults to settings.status_poll_interval.

        Raises:
            BuildNotFoundError: If the job id is unknown.
        """
        if job_id not in self.registry:
            raise BuildNotFoundError(job_id)
        return StatusBroadcaster(
            self.registry,
            job_id,
            interval if interval is not None else self.settings.status_poll_interval,
        )

    async def drain(self, cancel: bool = False) -> None:
        """Wait for background pipelines to finish.

        Args:
            cancel: Cancel running pipelines instead of waiting for them.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        if cancel:
            for task in tasks:
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["BuildService"]
