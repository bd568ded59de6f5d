"""Build service dependency for FastAPI.

The service lives on ``app.state`` for the lifetime of the application
and is shared by HTTP and WebSocket routes.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from starlette.requests import HTTPConnection

from iso_creator.builds.service import BuildService


def service_from_connection(conn: HTTPConnection) -> BuildService:
    """Get the build service from app state.

    Works for both HTTP requests and WebSocket connections.
    """
    service: Any = conn.app.state.build_service
    return service  # type: ignore[no-any-return]


def get_build_service(request: Request) -> BuildService:
    """Provide the build service to a route handler."""
    return service_from_connection(request)
