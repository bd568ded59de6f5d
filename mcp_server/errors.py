"""Error definitions for MCP tools.

This module defines structured error types with stable codes that can
be surfaced to MCP clients. Codes of core errors pass through unchanged.
"""

from dataclasses import dataclass
from typing import Any

from iso_creator.errors import IsoCreatorError

VALIDATION_ERROR = "validation"
BUILD_NOT_FOUND = "build_not_found"
INTERNAL_ERROR = "internal_error"


@dataclass
class MCPError:
    """Structured error response for MCP tools.

    Attributes:
        code: Stable error code for programmatic handling.
        message: Human-readable error message.
        details: Optional additional error details.
    """

    code: str
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


def make_error(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> MCPError:
    """Create an MCPError instance."""
    return MCPError(code=code, message=message, details=details)


def validation_error(message: str, details: dict[str, Any] | None = None) -> MCPError:
    """Create a validation error."""
    return make_error(VALIDATION_ERROR, message, details)


def build_not_found(build_id: str) -> MCPError:
    """Create a build not found error."""
    return make_error(
        BUILD_NOT_FOUND,
        f"Build not found: {build_id}",
        details={"build_id": build_id},
    )


def from_exception(error: IsoCreatorError) -> MCPError:
    """Create an MCPError from a core error, keeping its code."""
    return make_error(error.code, str(error))


__all__ = [
    "BUILD_NOT_FOUND",
    "INTERNAL_ERROR",
    "MCPError",
    "VALIDATION_ERROR",
    "build_not_found",
    "from_exception",
    "make_error",
    "validation_error",
]
