"""Tests for streaming/broadcaster.py module."""

import asyncio

import pytest

from iso_creator.builds.models import BuildConfig, BuildJob
from iso_creator.builds.registry import JobRegistry
from iso_creator.streaming.broadcaster import StatusBroadcaster, StatusMessage
from iso_creator.types import BuildStatus, LogLevel, MessageType


async def _collect(broadcaster: StatusBroadcaster) -> list[StatusMessage]:
    return [message async for message in broadcaster.stream()]


async def _new_job(registry: JobRegistry) -> BuildJob:
    job = await registry.create(BuildJob(config=BuildConfig(distro="debian")))
    await registry.mutate(job.id, None, "created")
    return job


def _types(messages: list[StatusMessage]) -> list[MessageType]:
    return [m.type for m in messages]


class TestStatusMessage:
    """Tests for the wire envelope."""

    def test_wire_form(self) -> None:
        """The job id is serialized as jobId."""
        message = StatusMessage(
            job_id="abc",
            type=MessageType.PROGRESS_UPDATE,
            data={"progress": 40},
        )
        assert message.to_wire() == {
            "jobId": "abc",
            "type": "ProgressUpdate",
            "data": {"progress": 40},
        }

    def test_alias_accepted(self) -> None:
        """Messages can be built from the wire form."""
        message = StatusMessage.model_validate(
            {"jobId": "abc", "type": "Completed", "data": {"download_url": "u"}}
        )
        assert message.job_id == "abc"
        assert message.type is MessageType.COMPLETED


class TestBroadcaster:
    """Tests for the status stream."""

    @pytest.mark.asyncio
    async def test_completed_job(self, registry: JobRegistry) -> None:
        """A finished job yields its state, all logs and Completed."""
        job = await _new_job(registry)
        await registry.mutate(job.id, BuildJob.mark_running, "Starting build process")
        await registry.mutate(
            job.id, lambda j: j.mark_completed("https://x/isos/a.iso"), "done"
        )

        messages = await _collect(StatusBroadcaster(registry, job.id, 0.01))

        assert _types(messages) == [
            MessageType.STATUS_UPDATE,
            MessageType.PROGRESS_UPDATE,
            MessageType.LOG_MESSAGE,
            MessageType.LOG_MESSAGE,
            MessageType.LOG_MESSAGE,
            MessageType.COMPLETED,
        ]
        assert messages[0].data == {"status": "completed", "progress": 100}
        assert messages[1].data == {"progress": 100}
        assert [m.data["message"] for m in messages[2:5]] == [
            "created",
            "Starting build process",
            "done",
        ]
        assert messages[2].data["level"] == "info"
        assert messages[-1].data == {"download_url": "https://x/isos/a.iso"}
        assert all(m.job_id == job.id for m in messages)

    @pytest.mark.asyncio
    async def test_failed_job(self, registry: JobRegistry) -> None:
        """A failed job ends with an Error message."""
        job = await _new_job(registry)
        await registry.mutate(
            job.id,
            lambda j: j.mark_failed("debootstrap failed"),
            "Build failed: debootstrap failed",
            LogLevel.ERROR,
        )

        messages = await _collect(StatusBroadcaster(registry, job.id, 0.01))

        assert messages[-1].type is MessageType.ERROR
        assert messages[-1].data == {"error": "debootstrap failed"}
        assert messages[-2].data["level"] == "error"

    @pytest.mark.asyncio
    async def test_unknown_job(self, registry: JobRegistry) -> None:
        """A job that does not exist ends the stream silently."""
        assert await _collect(StatusBroadcaster(registry, "missing", 0.01)) == []

    @pytest.mark.asyncio
    async def test_vanished_job(self, registry: JobRegistry) -> None:
        """A job removed mid-stream ends the stream without a final message."""
        job = await _new_job(registry)
        broadcaster = StatusBroadcaster(registry, job.id, 0.01)
        task = asyncio.create_task(_collect(broadcaster))
        await asyncio.sleep(0.03)
        del registry._jobs[job.id]

        messages = await asyncio.wait_for(task, timeout=1)
        assert MessageType.COMPLETED not in _types(messages)
        assert MessageType.ERROR not in _types(messages)
        assert messages[0].data == {"status": "queued", "progress": 0}

    @pytest.mark.asyncio
    async def test_live_updates(self, registry: JobRegistry) -> None:
        """Changes are streamed once each, in order, ending with Completed."""
        job = await _new_job(registry)
        broadcaster = StatusBroadcaster(registry, job.id, 0.01)
        sent: list[dict] = []

        async def send(payload: dict) -> None:
            sent.append(payload)

        task = asyncio.create_task(broadcaster.run(send))

        async def step(fn, message: str) -> None:
            await registry.mutate(job.id, fn, message)
            await asyncio.sleep(0.03)

        def advance(status: BuildStatus, progress: int):
            def apply(j: BuildJob) -> None:
                j.status = status
                j.progress = progress

            return apply

        await asyncio.sleep(0.03)
        await step(BuildJob.mark_running, "Starting build process")
        await step(advance(BuildStatus.BUILDING, 20), "Base system prepared")
        await step(None, "Installing")
        await step(advance(BuildStatus.PACKAGING, 80), "ISO image created")
        await step(lambda j: j.mark_completed("u"), "Build completed successfully")
        await asyncio.wait_for(task, timeout=1)

        logs = [p["data"]["message"] for p in sent if p["type"] == "LogMessage"]
        assert logs == [
            "created",
            "Starting build process",
            "Base system prepared",
            "Installing",
            "ISO image created",
            "Build completed successfully",
        ]
        statuses = [p["data"]["status"] for p in sent if p["type"] == "StatusUpdate"]
        assert statuses == ["queued", "building", "packaging", "completed"]
        progress = [p["data"]["progress"] for p in sent if p["type"] == "ProgressUpdate"]
        assert progress == [0, 20, 80, 100]
        assert sent[-1] == {"jobId": job.id, "type": "Completed", "data": {"download_url": "u"}}
