"""Per-connection job status streaming.

A broadcaster polls the job registry and turns changes into status
messages. It sends the current status, progress and all logs on the
first poll, then only what changed, and stops after the final
``Completed`` or ``Error`` message. If the job disappears it stops
without a final message.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from iso_creator.builds.models import BuildJob
from iso_creator.builds.registry import JobRegistry
from iso_creator.types import BuildStatus, MessageType

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class StatusMessage(BaseModel):
    """Envelope of one status-stream message.

    Serialized as ``{"jobId": ..., "type": ..., "data": {...}}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    type: MessageType
    data: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready wire form."""
        return self.model_dump(mode="json", by_alias=True)


class StatusBroadcaster:
    """Streams status messages for one job.

    Args:
        registry: Job registry to poll.
        job_id: Job to follow.
        interval: Seconds between polls.
    """

    def __init__(
        self,
        registry: JobRegistry,
        job_id: str,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.registry = registry
        self.job_id = job_id
        self.interval = interval
        self._last_status: BuildStatus | None = None
        self._last_progress: int | None = None
        self._logs_sent = 0

    def _message(self, type_: MessageType, data: dict[str, Any]) -> StatusMessage:
        return StatusMessage(job_id=self.job_id, type=type_, data=data)

    def _diff(self, job: BuildJob) -> list[StatusMessage]:
        messages: list[StatusMessage] = []
        if job.status != self._last_status:
            self._last_status = job.status
            messages.append(
                self._message(
                    MessageType.STATUS_UPDATE,
                    {"status": job.status.value, "progress": job.progress},
                )
            )
        if job.progress != self._last_progress:
            self._last_progress = job.progress
            messages.append(
                self._message(MessageType.PROGRESS_UPDATE, {"progress": job.progress})
            )
        for entry in job.logs[self._logs_sent :]:
            messages.append(
                self._message(
                    MessageType.LOG_MESSAGE,
                    {
                        "timestamp": entry.timestamp.isoformat(),
                        "level": entry.level.value,
                        "message": entry.message,
                    },
                )
            )
        self._logs_sent = len(job.logs)

        if job.status is BuildStatus.COMPLETED:
            messages.append(
                self._message(MessageType.COMPLETED, {"download_url": job.download_url})
            )
        elif job.status is BuildStatus.FAILED:
            messages.append(
                self._message(MessageType.ERROR, {"error": job.error or "Build failed"})
            )
        return messages

    async def stream(self) -> AsyncIterator[StatusMessage]:
        """Yield status messages until the job ends or disappears."""
        while True:
            job = await self.registry.get(self.job_id)
            if job is None:
                logger.info("Job %s vanished, closing stream", self.job_id)
                return

            for message in self._diff(job):
                yield message

            if job.is_terminal:
                return
            await asyncio.sleep(self.interval)

    async def run(self, send: Callable[[dict[str, Any]], Awaitable[None]]) -> None:
        """Send every message of the stream through ``send``.

        Args:
            send: Coroutine function receiving the wire form of each message.
        """
        async for message in self.stream():
            await send(message.to_wire())


__all__ = ["DEFAULT_POLL_INTERVAL", "StatusBroadcaster", "StatusMessage"]
