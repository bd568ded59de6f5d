"""Error taxonomy for iso_creator.

Every error carries a stable ``code`` that frontends surface to clients.
Pipeline stage errors are fatal: the job is marked failed with the
error message.
"""

from __future__ import annotations


class IsoCreatorError(Exception):
    """Base error for iso_creator operations."""

    def __init__(self, message: str, code: str = "iso_creator_error") -> None:
        super().__init__(message)
        self.code = code


class UnsupportedDistroError(IsoCreatorError):
    """Raised when a distribution has no bootstrap strategy."""

    def __init__(self, distro: str, code: str = "unsupported_distro") -> None:
        super().__init__(f"Unsupported distribution: {distro}", code=code)
        self.distro = distro


class ToolInvocationError(IsoCreatorError):
    """Raised when an external tool fails during a fatal stage."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr: str = "",
        command: str | None = None,
        code: str = "tool_failed",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command


class ToolTimeoutError(ToolInvocationError):
    """Raised when an external tool exceeds its deadline."""

    def __init__(
        self,
        message: str,
        timeout: float,
        command: str | None = None,
    ) -> None:
        super().__init__(
            message, exit_code=-1, command=command, code="tool_timeout"
        )
        self.timeout = timeout


class PackageManagerNotFoundError(IsoCreatorError):
    """Raised when no known package manager exists in the prepared root."""

    def __init__(self, root: str, code: str = "package_manager_not_found") -> None:
        super().__init__(f"No supported package manager found in {root}", code=code)
        self.root = root


class FilesystemError(IsoCreatorError):
    """Raised when a directory or file operation fails."""

    def __init__(self, message: str, code: str = "filesystem_error") -> None:
        super().__init__(message, code=code)


class TransferError(IsoCreatorError):
    """Raised when uploading an image to storage fails."""

    def __init__(self, message: str, code: str = "transfer_error") -> None:
        super().__init__(message, code=code)


class BuildNotFoundError(IsoCreatorError):
    """Raised when a job id is unknown."""

    def __init__(self, job_id: str, code: str = "build_not_found") -> None:
        super().__init__(f"Build not found: {job_id}", code=code)
        self.job_id = job_id


class DuplicateJobError(IsoCreatorError):
    """Raised when registering a job id that already exists."""

    def __init__(self, job_id: str, code: str = "duplicate_job") -> None:
        super().__init__(f"Build already registered: {job_id}", code=code)
        self.job_id = job_id


class InvalidTransitionError(IsoCreatorError):
    """Raised when a mutation breaks the job state machine."""

    def __init__(self, message: str, code: str = "invalid_transition") -> None:
        super().__init__(message, code=code)


__all__ = [
    "BuildNotFoundError",
    "DuplicateJobError",
    "FilesystemError",
    "InvalidTransitionError",
    "IsoCreatorError",
    "PackageManagerNotFoundError",
    "ToolInvocationError",
    "ToolTimeoutError",
    "TransferError",
    "UnsupportedDistroError",
]
