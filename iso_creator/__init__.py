"""ISO Creator - build-job orchestration for custom Linux disk images.

This package turns a declarative build configuration into a bootable
image by driving bootstrap, package, squashfs and ISO authoring tools,
and streams build progress to subscribers.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
