"""Build orchestration module.

This module handles:
- Build configuration and job models
- The in-memory job registry
- Pipeline stages (bootstrap, packages, customization, image, upload)
- The build service used by the HTTP, CLI and MCP frontends
"""

from iso_creator.builds.models import BuildConfig, BuildJob, BuildLog

__all__ = ["BuildConfig", "BuildJob", "BuildLog"]

# Lazy imports for submodules to avoid circular imports
# Access via iso_creator.builds.service, iso_creator.builds.registry, etc.
