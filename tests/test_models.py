"""Tests for build configuration and job models."""

import pytest
from pydantic import ValidationError

from iso_creator.builds.models import BuildConfig, BuildJob, ThemeConfig
from iso_creator.types import BuildMode, BuildStatus


class TestBuildConfig:
    """Tests for BuildConfig validation."""

    def test_defaults(self) -> None:
        """Only the distribution is required."""
        config = BuildConfig(distro="debian")
        assert config.mode is BuildMode.DESKTOP
        assert config.name == "custom-linux"
        assert config.overlays == []
        assert config.ai_mode is False
        assert config.theme == ThemeConfig()

    def test_distro_required(self) -> None:
        """An empty distribution selector is rejected."""
        with pytest.raises(ValidationError):
            BuildConfig(distro="")

    @pytest.mark.parametrize("name", ["../evil", "has space", "", "-leading", "x" * 65])
    def test_invalid_names(self, name: str) -> None:
        """Names unsafe for files or volume ids are rejected."""
        with pytest.raises(ValidationError):
            BuildConfig(distro="debian", name=name)

    def test_package_names_are_stripped(self) -> None:
        """Package names are trimmed and blanks dropped."""
        config = BuildConfig(
            distro="debian", overlays=[" docker ", ""], custom_software=["htop", "  "]
        )
        assert config.overlays == ["docker"]
        assert config.custom_software == ["htop"]

    def test_unknown_fields_rejected(self) -> None:
        """Typos in configuration keys are errors."""
        with pytest.raises(ValidationError):
            BuildConfig(distro="debian", overlay=["docker"])  # type: ignore[call-arg]

    def test_config_is_frozen(self) -> None:
        """Configurations are immutable."""
        config = BuildConfig(distro="debian")
        with pytest.raises(ValidationError):
            config.distro = "arch"  # type: ignore[misc]


class TestBuildJob:
    """Tests for BuildJob state helpers."""

    def test_new_job_is_queued(self) -> None:
        """New jobs start queued at zero progress with a uuid id."""
        job = BuildJob(config=BuildConfig(distro="debian"))
        assert job.status is BuildStatus.QUEUED
        assert job.progress == 0
        assert len(job.id) == 36
        assert job.logs == []

    def test_progress_bounds(self) -> None:
        """Progress is validated on assignment."""
        job = BuildJob(config=BuildConfig(distro="debian"))
        with pytest.raises(ValidationError):
            job.progress = 101

    def test_mark_completed(self) -> None:
        """Completion sets progress, URL and completion time."""
        job = BuildJob(config=BuildConfig(distro="debian"))
        job.mark_running()
        job.mark_completed("https://example.com/a.iso")
        assert job.status is BuildStatus.COMPLETED
        assert job.progress == 100
        assert job.download_url == "https://example.com/a.iso"
        assert job.completed_at is not None
        assert job.is_terminal

    def test_mark_failed_keeps_progress(self) -> None:
        """Failure records the error and leaves progress unchanged."""
        job = BuildJob(config=BuildConfig(distro="debian"), progress=40)
        job.mark_failed("boom")
        assert job.status is BuildStatus.FAILED
        assert job.error == "boom"
        assert job.progress == 40

    def test_snapshot_is_independent(self) -> None:
        """Changing a snapshot does not change the original."""
        job = BuildJob(config=BuildConfig(distro="debian"))
        copy = job.snapshot()
        copy.progress = 50
        assert job.progress == 0
