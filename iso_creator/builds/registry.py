"""In-memory job registry.

The registry is the single source of truth for job state. The backing
dict is never exposed: readers get deep snapshot copies and writers go
through ``mutate``, which applies a change atomically, checks the state
machine invariants, and appends exactly one log entry per call. Log
length is therefore a reliable "something changed" signal for
subscribers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from iso_creator.builds.models import BuildJob, BuildLog
from iso_creator.errors import (
    BuildNotFoundError,
    DuplicateJobError,
    InvalidTransitionError,
)
from iso_creator.types import LogLevel, can_transition

logger = logging.getLogger(__name__)

JobMutation = Callable[[BuildJob], None]


def _check_invariants(before: BuildJob, after: BuildJob) -> None:
    """Validate a mutation against the job state machine.

    Raises:
        InvalidTransitionError: If the mutation breaks an invariant.
    """
    if after.id != before.id:
        raise InvalidTransitionError("Job id is immutable")
    if after.config != before.config:
        raise InvalidTransitionError("Job config is immutable")
    if after.status != before.status and not can_transition(
        before.status, after.status
    ):
        raise InvalidTransitionError(
            f"Cannot move job {before.id} from {before.status.value} "
            f"to {after.status.value}"
        )
    if before.is_terminal and after.status == before.status:
        raise InvalidTransitionError(
            f"Job {before.id} is already {before.status.value}"
        )
    if after.progress < before.progress:
        raise InvalidTransitionError(
            f"Progress of job {before.id} cannot decrease "
            f"({before.progress} -> {after.progress})"
        )
    if after.logs[: len(before.logs)] != before.logs:
        raise InvalidTransitionError("Job logs are append-only")


class JobRegistry:
    """Concurrency-safe store of build jobs keyed by job id."""

    def __init__(self) -> None:
        self._jobs: dict[str, BuildJob] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    async def create(self, job: BuildJob) -> BuildJob:
        """Register a new job.

        Args:
            job: Job record to store.

        Returns:
            Snapshot of the stored job.

        Raises:
            DuplicateJobError: If the job id is already registered.
        """
        async with self._lock:
            if job.id in self._jobs:
                raise DuplicateJobError(job.id)
            stored = job.snapshot()
            self._jobs[job.id] = stored
            logger.debug("Registered job %s", job.id)
            return stored.snapshot()

    async def get(self, job_id: str) -> BuildJob | None:
        """Return a snapshot of a job, or None if unknown."""
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job is not None else None

    async def mutate(
        self,
        job_id: str,
        fn: JobMutation | None,
        message: str,
        level: LogLevel = LogLevel.INFO,
    ) -> BuildJob:
        """Apply a change to a job atomically and append one log entry.

        ``fn`` receives a working copy; the stored record is only replaced
        once the change passes the invariant checks.

        Args:
            job_id: Job to change.
            fn: Mutation applied to the working copy, or None for a log-only change.
            message: Log message recorded with the change.
            level: Log level of the entry.

        Returns:
            Snapshot of the updated job.

        Raises:
            BuildNotFoundError: If the job id is unknown.
            InvalidTransitionError: If the change breaks an invariant.
        """
        async with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise BuildNotFoundError(job_id)

            working = current.snapshot()
            if fn is not None:
                fn(working)
            _check_invariants(current, working)
            working.logs.append(BuildLog(level=level, message=message))

            self._jobs[job_id] = working
            return working.snapshot()

    async def list(
        self,
        predicate: Callable[[BuildJob], bool] | None = None,
    ) -> list[BuildJob]:
        """List job snapshots in registration order.

        Args:
            predicate: Optional filter applied to each job.

        Returns:
            Snapshots of the matching jobs.
        """
        async with self._lock:
            snapshots = [job.snapshot() for job in self._jobs.values()]
        if predicate is None:
            return snapshots
        return [job for job in snapshots if predicate(job)]


__all__ = ["JobMutation", "JobRegistry"]
