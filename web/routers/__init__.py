"""Router modules for FastAPI web API."""

from web.routers import builds, config, distros, hardware, health, ws

__all__ = ["builds", "config", "distros", "hardware", "health", "ws"]
