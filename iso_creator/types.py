"""Shared type definitions for iso_creator.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class BuildStatus(str, Enum):
    """Status of a build job."""

    QUEUED = "queued"
    BUILDING = "building"
    PACKAGING = "packaging"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are allowed."""
        return self in (BuildStatus.COMPLETED, BuildStatus.FAILED)


# Position of each non-failed status on the linear success path.
_STATUS_ORDER = {
    BuildStatus.QUEUED: 0,
    BuildStatus.BUILDING: 1,
    BuildStatus.PACKAGING: 2,
    BuildStatus.UPLOADING: 3,
    BuildStatus.COMPLETED: 4,
}


def can_transition(current: BuildStatus, new: BuildStatus) -> bool:
    """Check whether a job may move from one status to another.

    Staying in the same non-terminal status is allowed (progress updates).
    Failed is reachable from any non-terminal status; otherwise the path
    only moves forward.

    Args:
        current: Current status.
        new: Requested status.

    Returns:
        True if the transition is allowed.
    """
    if current.is_terminal:
        return False
    if new is BuildStatus.FAILED:
        return True
    return _STATUS_ORDER[new] >= _STATUS_ORDER[current]


class BuildMode(str, Enum):
    """Target system flavour."""

    DESKTOP = "desktop"
    SERVER = "server"


class DistroCategory(str, Enum):
    """Distribution family, selecting the bootstrap strategy."""

    DEBIAN = "debian"
    UBUNTU = "ubuntu"
    ARCH = "arch"
    FEDORA = "fedora"
    CUSTOM = "custom"


class LogLevel(str, Enum):
    """Level of a build log entry."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class MessageType(str, Enum):
    """Type of a status-stream message."""

    STATUS_UPDATE = "StatusUpdate"
    PROGRESS_UPDATE = "ProgressUpdate"
    LOG_MESSAGE = "LogMessage"
    COMPLETED = "Completed"
    ERROR = "Error"


@dataclass(frozen=True)
class DeviceRecord:
    """One parsed line of hardware enumeration output."""

    slot: str
    device_type: str
    device_name: str


@dataclass(frozen=True)
class ModuleRecommendation:
    """A kernel module recommended (or deliberately excluded) for a device."""

    module_name: str
    reason: str
    enabled: bool = True


__all__ = [
    "BuildMode",
    "BuildStatus",
    "DeviceRecord",
    "DistroCategory",
    "LogLevel",
    "MessageType",
    "ModuleRecommendation",
    "can_transition",
]
