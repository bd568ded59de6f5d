"""Hardware detection module.

This module handles:
- Parsing hardware enumeration text
- Kernel module recommendations
- Kernel configuration fragments
"""

from iso_creator.hardware.classifier import (
    classify_modules,
    detect_modules,
    parse_devices,
)

__all__ = ["classify_modules", "detect_modules", "parse_devices"]
