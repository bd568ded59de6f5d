"""Hardware enumeration parsing and kernel module classification.

This module handles:
- Parsing `lspci`-style enumeration text into device records
- Mapping devices to kernel module recommendations by keyword rules

Both functions are pure: identical input always yields identical output.
"""

from __future__ import annotations

from collections.abc import Iterable

from iso_creator.types import DeviceRecord, ModuleRecommendation

UNKNOWN_DEVICE_TYPE = "Unknown"

_GPU_TYPES = ("vga", "display", "3d")
_NETWORK_TYPES = ("network", "ethernet", "wifi", "wireless")
_WIFI_NAMES = ("wi-fi", "wireless", "wifi")
_AUDIO_TYPES = ("audio", "multimedia")
_STORAGE_TYPES = ("sata", "ahci", "nvme", "storage")
_CHIPSET_TYPES = ("smbus", "isa", "bridge")


def _contains_any(text: str, needles: Iterable[str]) -> bool:
    return any(needle in text for needle in needles)


def parse_device_line(line: str) -> DeviceRecord | None:
    """Parse a single enumeration line.

    Args:
        line: One line of enumeration output.

    Returns:
        DeviceRecord, or None for a blank line.
    """
    line = line.strip()
    if not line:
        return None

    parts = line.split(maxsplit=1)
    slot = parts[0]
    rest = parts[1] if len(parts) > 1 else ""

    device_type, sep, device_name = rest.partition(":")
    if not sep:
        return DeviceRecord(slot, UNKNOWN_DEVICE_TYPE, rest)
    return DeviceRecord(slot, device_type.strip(), device_name.strip())


def parse_devices(raw_text: str) -> list[DeviceRecord]:
    """Parse free-form enumeration text into device records.

    Each non-blank line becomes one record. Lines without a ``type: name``
    shape degrade to records typed ``Unknown``; parsing never fails.

    Args:
        raw_text: Multi-line enumeration text (e.g. `lspci` output).

    Returns:
        List of DeviceRecord in input order.
    """
    devices: list[DeviceRecord] = []
    for line in raw_text.splitlines():
        record = parse_device_line(line)
        if record is not None:
            devices.append(record)
    return devices


def _modules_for_device(device: DeviceRecord) -> list[ModuleRecommendation]:
    t = device.device_type.lower()
    n = device.device_name.lower()
    name = device.device_name

    if _contains_any(t, _GPU_TYPES):
        if "nvidia" in n:
            return [
                ModuleRecommendation("nvidia", f"GPU: {name}", True),
                ModuleRecommendation(
                    "nouveau",
                    "Open-source NVIDIA (conflicts with proprietary)",
                    False,
                ),
            ]
        if "amd" in n or "radeon" in n:
            return [ModuleRecommendation("amdgpu", f"GPU: {name}", True)]
        if "intel" in n:
            return [ModuleRecommendation("i915", f"GPU: {name}", True)]
        return []

    if _contains_any(t, _NETWORK_TYPES):
        if "intel" in n:
            if _contains_any(n, _WIFI_NAMES):
                return [ModuleRecommendation("iwlwifi", f"WiFi: {name}", True)]
            return [ModuleRecommendation("e1000e", f"Ethernet: {name}", True)]
        if "realtek" in n:
            return [ModuleRecommendation("r8169", f"Ethernet: {name}", True)]
        if "broadcom" in n:
            return [ModuleRecommendation("bnxt_en", f"NIC: {name}", True)]
        if "qualcomm" in n or "atheros" in n:
            return [ModuleRecommendation("ath11k", f"WiFi: {name}", True)]
        return []

    if _contains_any(t, _AUDIO_TYPES):
        return [ModuleRecommendation("snd_hda_intel", f"Audio: {name}", True)]

    if "usb" in t:
        return [ModuleRecommendation("xhci_hcd", f"USB: {name}", True)]

    if _contains_any(t, _STORAGE_TYPES):
        if "nvme" in n or "nvme" in t:
            return [ModuleRecommendation("nvme", f"Storage: {name}", True)]
        return [ModuleRecommendation("ahci", f"Storage: {name}", True)]

    # Chipset bridges and anything unrecognised need no module.
    return []


def classify_modules(devices: Iterable[DeviceRecord]) -> list[ModuleRecommendation]:
    """Map devices to kernel module recommendations.

    The result is sorted by module name and deduplicated on module name,
    keeping the first occurrence.

    Args:
        devices: Parsed device records.

    Returns:
        Sorted, deduplicated list of ModuleRecommendation.
    """
    modules: list[ModuleRecommendation] = []
    for device in devices:
        modules.extend(_modules_for_device(device))

    # sorted() is stable, so the first occurrence per name stays first
    modules.sort(key=lambda m: m.module_name)
    result: list[ModuleRecommendation] = []
    seen: set[str] = set()
    for module in modules:
        if module.module_name in seen:
            continue
        seen.add(module.module_name)
        result.append(module)
    return result


def detect_modules(raw_text: str) -> list[ModuleRecommendation]:
    """Parse enumeration text and classify it in one pass.

    Args:
        raw_text: Multi-line enumeration text.

    Returns:
        Sorted, deduplicated list of ModuleRecommendation.
    """
    return classify_modules(parse_devices(raw_text))


__all__ = [
    "UNKNOWN_DEVICE_TYPE",
    "classify_modules",
    "detect_modules",
    "parse_device_line",
    "parse_devices",
]
