"""Build job models.

This module defines the pydantic models for build configurations and
build job records. Job records live in memory only, inside the job
registry; callers always receive snapshot copies.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from iso_creator.types import BuildMode, BuildStatus, LogLevel, ModuleRecommendation

IMAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def utcnow() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    """Generate a new job identifier."""
    return str(uuid.uuid4())


class ColorScheme(BaseModel):
    """Desktop colour scheme."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    primary: str = "#3584e4"
    secondary: str = "#2ec27e"
    background: str = "#241f31"
    text: str = "#ffffff"


class ThemeConfig(BaseModel):
    """Theme selection for desktop builds.

    Attributes:
        wallpaper: Wallpaper URL or path.
        gtk_theme: GTK theme name.
        icon_theme: Icon theme name.
        colors: Colour scheme.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    wallpaper: str | None = None
    gtk_theme: str | None = None
    icon_theme: str | None = None
    colors: ColorScheme = Field(default_factory=ColorScheme)


class BuildConfig(BaseModel):
    """Declarative build configuration submitted by a client.

    Immutable once attached to a job.

    Attributes:
        distro: Distribution selector (e.g. 'debian', 'fedora-39').
        mode: Desktop or server build.
        name: Image name; used for the output file and volume id.
        overlays: Overlay ids resolved to packages per package manager.
        custom_software: Free-text package names installed as-is.
        hardware_raw: Raw hardware enumeration text.
        ai_mode: Enable automatic kernel-module optimization.
        desktop_environment: Override for the desktop package.
        theme: Theme selection.
        custom_scripts: Shell scripts run inside the root after packages.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    distro: str = Field(min_length=1)
    mode: BuildMode = BuildMode.DESKTOP
    name: str = "custom-linux"
    overlays: list[str] = Field(default_factory=list)
    custom_software: list[str] = Field(default_factory=list)
    hardware_raw: str = ""
    ai_mode: bool = False
    desktop_environment: str | None = None
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    custom_scripts: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the image name is safe for file names and volume ids."""
        if not IMAGE_NAME_PATTERN.match(v):
            raise ValueError(
                "name must be 1-64 characters of letters, digits, '.', '_' or '-'"
            )
        return v

    @field_validator("overlays", "custom_software")
    @classmethod
    def validate_package_names(cls, v: list[str]) -> list[str]:
        """Strip names and drop blanks."""
        return [name.strip() for name in v if name.strip()]


class BuildLog(BaseModel):
    """A timestamped, leveled log entry of a build job."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    level: LogLevel = LogLevel.INFO
    message: str


class BuildJob(BaseModel):
    """In-memory record of one build job.

    Attributes:
        id: Job identifier, immutable.
        config: Submitted configuration, immutable.
        status: Current state machine status.
        progress: Percent complete, never decreasing.
        logs: Append-only log entries.
        modules: Kernel module recommendations for the job's hardware.
        download_url: Retrieval URL once completed.
        error: Captured message of the fatal error, if failed.
        image_sha256: SHA-256 of the produced image.
        image_size: Size of the produced image in bytes.
        created_at: Registration time.
        started_at: Pipeline start time.
        completed_at: Time a terminal state was reached.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_job_id)
    config: BuildConfig
    status: BuildStatus = BuildStatus.QUEUED
    progress: int = Field(default=0, ge=0, le=100)
    logs: list[BuildLog] = Field(default_factory=list)
    modules: list[ModuleRecommendation] = Field(default_factory=list)
    download_url: str | None = None
    error: str | None = None
    image_sha256: str | None = None
    image_size: int | None = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def __repr__(self) -> str:
        """Return string representation of BuildJob."""
        return (
            f"<BuildJob(id='{self.id}', distro='{self.config.distro}', "
            f"status='{self.status.value}', progress={self.progress})>"
        )

    def snapshot(self) -> BuildJob:
        """Return a deep copy safe to hand out of the registry."""
        return self.model_copy(deep=True)

    def mark_running(self) -> None:
        """Mark this job as building."""
        self.status = BuildStatus.BUILDING
        self.started_at = utcnow()

    def mark_completed(self, download_url: str) -> None:
        """Mark this job as completed with its download URL."""
        self.status = BuildStatus.COMPLETED
        self.progress = 100
        self.download_url = download_url
        self.completed_at = utcnow()

    def mark_failed(self, message: str) -> None:
        """Mark this job as failed.

        Args:
            message: Captured error message.
        """
        self.status = BuildStatus.FAILED
        self.error = message
        self.completed_at = utcnow()

    @property
    def is_terminal(self) -> bool:
        """Whether the job has reached a terminal state."""
        return self.status.is_terminal


__all__ = [
    "BuildConfig",
    "BuildJob",
    "BuildLog",
    "ColorScheme",
    "ThemeConfig",
    "new_job_id",
    "utcnow",
]
