"""Shared fixtures for iso_creator tests.

External tools never run in tests: FakeExecutor records every command
and returns scripted results, creating just enough files for the next
stage to proceed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import pytest

from iso_creator.builds.executor import CommandResult, format_command
from iso_creator.builds.registry import JobRegistry
from iso_creator.builds.service import BuildService
from iso_creator.builds.upload import LocalObjectStorage
from iso_creator.config import Settings

BOOTSTRAP_TOOLS = ("debootstrap", "pacstrap", "dnf")

SAMPLE_LSPCI = """\
00:00.0 Host bridge: Intel Corporation 12th Gen Core Processor Host Bridge
00:02.0 VGA compatible controller: Intel Corporation Alder Lake-P Integrated Graphics
00:14.0 USB controller: Intel Corporation Alder Lake PCH USB 3.2 xHCI Host Controller
00:14.3 Network controller: Intel Corporation Alder Lake-P PCH CNVi WiFi
00:1f.3 Audio device: Intel Corporation Alder Lake PCH-P High Definition Audio Controller
01:00.0 VGA compatible controller: NVIDIA Corporation GA107M [GeForce RTX 3050 Mobile]
02:00.0 Ethernet controller: Realtek Semiconductor Co., Ltd. RTL8111/8168 PCI Express Gigabit Ethernet
"""


class FakeExecutor:
    """Command executor returning scripted results.

    Args:
        fail_on: Maps a token to the result returned when the program or
            any argument equals that token.
        raise_on: Maps a token to an exception raised instead.
        package_manager: Executable created in the root by the bootstrap step
            (None leaves the root without a package manager).
    """

    def __init__(
        self,
        fail_on: dict[str, CommandResult] | None = None,
        raise_on: dict[str, Exception] | None = None,
        package_manager: str | None = "apt-get",
    ) -> None:
        self.fail_on = fail_on or {}
        self.raise_on = raise_on or {}
        self.package_manager = package_manager
        self.calls: list[list[str]] = []
        self.gate: asyncio.Event | None = None
        self.running = 0
        self.max_running = 0

    def programs(self) -> list[str]:
        """Return the program of every recorded call."""
        return [call[0] for call in self.calls]

    def _match(self, command: list[str], table: dict) -> object | None:
        for token in command:
            if token in table:
                return table[token]
        return None

    def _side_effects(self, program: str, args: Sequence[str]) -> None:
        if program in BOOTSTRAP_TOOLS and self.package_manager:
            for arg in args:
                path = Path(arg)
                if path.name == "root" and path.is_dir():
                    bin_dir = path / "usr" / "bin"
                    bin_dir.mkdir(parents=True, exist_ok=True)
                    (bin_dir / self.package_manager).touch()
        elif program == "mksquashfs":
            Path(args[1]).write_bytes(b"squashfs")
        elif program == "xorriso":
            output = Path(args[list(args).index("-output") + 1])
            output.write_bytes(b"ISO9660 image")

    async def run(
        self,
        program: str,
        args: Sequence[str],
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        command = [program, *args]
        self.calls.append(command)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            if self.gate is not None and program in BOOTSTRAP_TOOLS:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)

            error = self._match(command, self.raise_on)
            if error is not None:
                raise error  # type: ignore[misc]

            scripted = self._match(command, self.fail_on)
            if scripted is not None:
                return scripted  # type: ignore[return-value]

            self._side_effects(program, args)
            return CommandResult(exit_code=0, command=format_command(program, args))
        finally:
            self.running -= 1


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Executor that succeeds for every command."""
    return FakeExecutor()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated to tmp_path with fast status polling."""
    return Settings(
        work_dir=tmp_path / "work",
        artifacts_dir=tmp_path / "artifacts",
        storage_url=None,
        storage_public_url=None,
        status_poll_interval=0.01,
        max_concurrent_builds=2,
        keep_build_dir=False,
    )


@pytest.fixture
def storage(settings: Settings) -> LocalObjectStorage:
    """Local storage in the test artifacts directory."""
    return LocalObjectStorage(settings.artifacts_dir)


@pytest.fixture
def registry() -> JobRegistry:
    """Empty job registry."""
    return JobRegistry()


@pytest.fixture
def service(
    settings: Settings,
    registry: JobRegistry,
    fake_executor: FakeExecutor,
    storage: LocalObjectStorage,
) -> BuildService:
    """Build service wired to the fake executor."""
    return BuildService(
        settings=settings,
        registry=registry,
        executor=fake_executor,
        storage=storage,
    )


@pytest.fixture
def sample_lspci() -> str:
    """lspci output of a hybrid-GPU laptop."""
    return SAMPLE_LSPCI


@pytest.fixture
def executor_factory() -> type[FakeExecutor]:
    """The FakeExecutor class, for tests that script failures."""
    return FakeExecutor
