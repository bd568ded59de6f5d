"""FastAPI web application for Linux ISO Creator.

This module provides the HTTP and WebSocket API that mirrors the core
build service. All business logic is delegated to iso_creator/.
"""

from web.app import create_app

__all__ = ["create_app"]
